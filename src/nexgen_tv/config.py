"""Configuration management for NexGen TV."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .logging_utils import get_logger

CONFIG_PATH = Path.home() / ".config" / "nexgen_tv" / "config.yaml"
DEFAULT_FETCH_TIMEOUT = 30.0

log = get_logger(__name__)


@dataclass(slots=True)
class AppConfig:
    """Top level application configuration."""

    catalog_path: Optional[Path] = None
    preferred_player: Optional[str] = None
    user_agent: Optional[str] = None
    theme: Optional[str] = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _clean_scalar(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return value


def _parse_config(raw: str) -> dict[str, object]:
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        pass
    else:
        return data if isinstance(data, dict) else {}

    result: dict[str, object] = {}
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, separator, value = stripped.partition(":")
        if not separator:
            log.warning("Ignoring malformed configuration line: %s", stripped)
            continue
        cleaned = _clean_scalar(value)
        if cleaned:
            result[key.strip()] = cleaned
    return result


def _optional_text(data: dict[str, object], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_timeout(value: object) -> float:
    if value is None:
        return DEFAULT_FETCH_TIMEOUT
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        log.warning("Ignoring invalid fetch_timeout %r", value)
        return DEFAULT_FETCH_TIMEOUT
    if timeout <= 0:
        log.warning("fetch_timeout must be positive; got %s", timeout)
        return DEFAULT_FETCH_TIMEOUT
    return timeout


def _dump_config(config: AppConfig) -> str:
    lines: list[str] = []
    if config.catalog_path is not None:
        lines.append(f"catalog_path: {config.catalog_path}")
    if config.preferred_player:
        lines.append(f"preferred_player: {config.preferred_player}")
    if config.user_agent:
        lines.append(f'user_agent: "{config.user_agent}"')
    if config.theme:
        lines.append(f"theme: {config.theme}")
    if config.fetch_timeout != DEFAULT_FETCH_TIMEOUT:
        lines.append(f"fetch_timeout: {config.fetch_timeout:g}")
    lines.append("")
    return "\n".join(lines)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Read settings from *path*, falling back to defaults when it is absent."""

    source = path or CONFIG_PATH
    try:
        raw = source.read_text(encoding="utf8")
    except FileNotFoundError:
        log.info("No configuration at %s; running with defaults", source)
        return AppConfig()
    data = _parse_config(raw)
    catalog = _optional_text(data, "catalog_path")
    config = AppConfig(
        catalog_path=Path(catalog).expanduser() if catalog else None,
        preferred_player=_optional_text(data, "preferred_player"),
        user_agent=_optional_text(data, "user_agent"),
        theme=_optional_text(data, "theme"),
        fetch_timeout=_parse_timeout(data.get("fetch_timeout")),
    )
    log.info("Read configuration from %s", source)
    return config


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    """Write *config* to *path*, creating parent directories as needed."""

    target = path or CONFIG_PATH
    _ensure_parent(target)
    target.write_text(_dump_config(config), encoding="utf8")
    log.info("Wrote configuration to %s", target)


__all__ = [
    "AppConfig",
    "CONFIG_PATH",
    "DEFAULT_FETCH_TIMEOUT",
    "load_config",
    "save_config",
]
