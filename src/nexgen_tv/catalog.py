"""Country-grouped catalog of playlists offered in the browser."""
from __future__ import annotations

import importlib.resources as resources
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .logging_utils import get_logger

log = get_logger(__name__)

CATALOG_RESOURCE = "channels.json"
DEFAULT_PLAYLIST_CATEGORY = "General"


class CatalogError(RuntimeError):
    """Raised when the catalog file cannot be read."""


@dataclass(frozen=True, slots=True)
class PlaylistDescriptor:
    """A playlist that can be fetched and browsed."""

    name: str
    url: str
    category: str = DEFAULT_PLAYLIST_CATEGORY


@dataclass(frozen=True, slots=True)
class CountryEntry:
    """Playlists grouped under one country."""

    country: str
    flag: Optional[str] = None
    playlists: tuple[PlaylistDescriptor, ...] = ()


def _read_catalog_text(path: Optional[Path]) -> tuple[str, str]:
    if path is None:
        resource = resources.files("nexgen_tv").joinpath(CATALOG_RESOURCE)
        try:
            return resource.read_text(encoding="utf-8"), str(resource)
        except (FileNotFoundError, OSError) as exc:
            raise CatalogError(f"Bundled catalog is missing: {exc}") from exc
    catalog_path = Path(path).expanduser()
    try:
        return catalog_path.read_text(encoding="utf-8"), str(catalog_path)
    except OSError as exc:
        raise CatalogError(f"Failed to read catalog {catalog_path}: {exc}") from exc


def _parse_playlist(entry: object, country: str) -> Optional[PlaylistDescriptor]:
    if not isinstance(entry, dict):
        return None
    name = entry.get("name")
    url = entry.get("url")
    if not isinstance(name, str) or not name.strip():
        log.warning("Skipping playlist without a name in %s", country)
        return None
    if not isinstance(url, str) or not url.strip():
        log.warning("Skipping playlist %s without a URL in %s", name, country)
        return None
    category = entry.get("category")
    return PlaylistDescriptor(
        name=name.strip(),
        url=url.strip(),
        category=str(category).strip() if category else DEFAULT_PLAYLIST_CATEGORY,
    )


def parse_catalog(raw: str) -> List[CountryEntry]:
    """Parse the JSON catalog document *raw*."""

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise CatalogError("Catalog must be a list of countries")

    countries: List[CountryEntry] = []
    for entry in data:
        if not isinstance(entry, dict) or not entry.get("country"):
            log.warning("Skipping catalog entry without a country: %r", entry)
            continue
        country = str(entry["country"])
        raw_playlists = entry.get("channels") or []
        if not isinstance(raw_playlists, list):
            log.warning("Ignoring malformed playlist list for %s", country)
            raw_playlists = []
        playlists = tuple(
            playlist
            for playlist in (_parse_playlist(item, country) for item in raw_playlists)
            if playlist is not None
        )
        flag = entry.get("flag")
        countries.append(
            CountryEntry(
                country=country,
                flag=str(flag) if flag else None,
                playlists=playlists,
            )
        )
    return countries


def load_catalog(path: Optional[Path] = None) -> List[CountryEntry]:
    """Load the catalog from *path*, or the bundled one when omitted."""

    raw, origin = _read_catalog_text(path)
    countries = parse_catalog(raw)
    log.info(
        "Loaded %d playlist(s) across %d countr(ies) from %s",
        count_playlists(countries),
        len(countries),
        origin,
    )
    return countries


def filter_catalog(countries: Sequence[CountryEntry], term: str) -> List[CountryEntry]:
    """Keep playlists whose name, country or category contains *term*."""

    needle = term.strip().lower()
    if not needle:
        return list(countries)
    results: List[CountryEntry] = []
    for entry in countries:
        in_country = needle in entry.country.lower()
        playlists = tuple(
            playlist
            for playlist in entry.playlists
            if in_country
            or needle in playlist.name.lower()
            or needle in playlist.category.lower()
        )
        if playlists:
            results.append(
                CountryEntry(country=entry.country, flag=entry.flag, playlists=playlists)
            )
    return results


def count_playlists(countries: Iterable[CountryEntry]) -> int:
    return sum(len(entry.playlists) for entry in countries)


__all__ = [
    "CatalogError",
    "CountryEntry",
    "PlaylistDescriptor",
    "count_playlists",
    "filter_catalog",
    "load_catalog",
    "parse_catalog",
]
