"""Parsing and fetching of extended M3U channel playlists."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence
from urllib import request
from urllib.error import HTTPError, URLError

from .logging_utils import get_logger

log = get_logger(__name__)

EXTINF_MARKER = "#EXTINF:"
COMMENT_MARKER = "#"
UNKNOWN_CHANNEL_NAME = "Unknown Channel"
DEFAULT_CATEGORY = "Uncategorized"
BOM = "\ufeff"

_LOGO_PATTERN = re.compile(r'tvg-logo="([^"]*)"')
_GROUP_PATTERN = re.compile(r'group-title="([^"]*)"')


@dataclass(frozen=True, slots=True)
class ChannelRecord:
    """A channel extracted from a playlist document."""

    id: int
    name: str
    url: str
    logo: Optional[str] = None
    category: str = DEFAULT_CATEGORY

    def matches(self, term: str) -> bool:
        """Return True if *term* occurs in the name or category, ignoring case."""

        needle = term.strip().lower()
        if not needle:
            return True
        return needle in self.name.lower() or needle in self.category.lower()


class PlaylistFetchError(RuntimeError):
    """Raised when a playlist document cannot be retrieved."""


def _extract_name(info_line: str) -> str:
    _, comma, name = info_line.rpartition(",")
    if not comma:
        return UNKNOWN_CHANNEL_NAME
    return name.strip()


def _is_url_line(line: Optional[str]) -> bool:
    if line is None:
        return False
    # Markers are matched where the raw line begins; indented text is a URL.
    return bool(line.strip()) and not line.startswith(COMMENT_MARKER)


def parse_playlist(text: str) -> List[ChannelRecord]:
    """Parse playlist *text* into channel records.

    Each ``#EXTINF:`` line must be immediately followed by its stream URL.
    Entries without one are skipped rather than reported; the line that
    followed them is examined again as a possible start of the next entry.
    """

    lines = text.removeprefix(BOM).splitlines()
    channels: List[ChannelRecord] = []
    skipped = 0
    index = 0
    total = len(lines)
    while index < total:
        raw = lines[index]
        line = raw.strip()
        index += 1
        if not raw.startswith(EXTINF_MARKER):
            continue
        following = lines[index] if index < total else None
        if not _is_url_line(following):
            skipped += 1
            log.debug("Skipping entry without stream URL: %s", line)
            continue
        logo_match = _LOGO_PATTERN.search(line)
        group_match = _GROUP_PATTERN.search(line)
        channel = ChannelRecord(
            id=len(channels) + 1,
            name=_extract_name(line),
            url=following.strip(),
            logo=logo_match.group(1) if logo_match else None,
            category=group_match.group(1) if group_match else DEFAULT_CATEGORY,
        )
        channels.append(channel)
        index += 1

    if skipped:
        log.info("Skipped %d playlist entries without a stream URL", skipped)
    log.info("Parsed %d channels from playlist", len(channels))
    return channels


def filter_channels(channels: Sequence[ChannelRecord], term: str) -> List[ChannelRecord]:
    """Return the channels matching *term*, keeping playlist order."""

    if not term.strip():
        return list(channels)
    results = [channel for channel in channels if channel.matches(term)]
    log.debug("Filter query '%s' matched %d channel(s)", term, len(results))
    return results


def fetch_playlist(
    source: str | Path,
    *,
    user_agent: Optional[str] = None,
    timeout: float = 30.0,
    progress: Optional[Callable[[int, Optional[int]], None]] = None,
) -> str:
    """Return the text of a playlist stored at a local path or URL."""

    def report(loaded: int, total: Optional[int]) -> None:
        if progress is None:
            return
        try:
            progress(loaded, total)
        except Exception:  # pragma: no cover - diagnostic safeguard
            log.exception("Progress callback failed")

    source_str = str(source)
    log.info("Fetching playlist from %s", source_str)
    chunk_size = 64_000
    data = bytearray()

    if source_str.startswith(("http://", "https://")):
        req = request.Request(source_str)
        if user_agent:
            req.add_header("User-Agent", user_agent)
        try:
            with request.urlopen(req, timeout=timeout) as response:
                total = getattr(response, "length", None)
                while True:
                    chunk = response.read(chunk_size)
                    if not chunk:
                        break
                    data.extend(chunk)
                    report(len(data), total)
        except (HTTPError, URLError, OSError, ValueError) as exc:
            raise PlaylistFetchError(f"Failed to fetch {source_str}: {exc}") from exc
        log.debug("Downloaded playlist bytes: %d", len(data))
        return data.decode("utf-8-sig", errors="replace")

    path = Path(source_str).expanduser()
    if not path.is_file():
        raise PlaylistFetchError(f"Playlist path not found: {path}")
    try:
        with path.open("rb") as handle:
            while True:
                chunk = handle.read(chunk_size)
                if not chunk:
                    break
                data.extend(chunk)
                report(len(data), None)
    except OSError as exc:
        raise PlaylistFetchError(f"Failed to read {path}: {exc}") from exc
    log.debug("Read playlist file %s (%d bytes)", path, len(data))
    return data.decode("utf-8-sig", errors="replace")


def load_playlist(
    source: str | Path,
    *,
    user_agent: Optional[str] = None,
    timeout: float = 30.0,
) -> List[ChannelRecord]:
    """Fetch and parse the playlist at *source*."""

    text = fetch_playlist(source, user_agent=user_agent, timeout=timeout)
    return parse_playlist(text)


__all__ = [
    "ChannelRecord",
    "DEFAULT_CATEGORY",
    "PlaylistFetchError",
    "UNKNOWN_CHANNEL_NAME",
    "fetch_playlist",
    "filter_channels",
    "load_playlist",
    "parse_playlist",
]
