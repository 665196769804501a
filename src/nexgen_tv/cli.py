"""``nexgen-tv`` command: start the browser or run a one-shot utility."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable

from . import __version__
from .app import NexGenApp
from .config import CONFIG_PATH, AppConfig, load_config
from .logging_utils import configure_logging, get_logger
from .player import PlaybackError, probe_player
from .playlist import PlaylistFetchError, load_playlist
from .themes import CUSTOM_THEMES

log = get_logger(__name__)


def _theme_names() -> list[str]:
    return sorted(CUSTOM_THEMES)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nexgen-tv",
        description="Browse IPTV playlists by country and control playback with typed commands",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    settings = parser.add_argument_group("settings")
    settings.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help="Settings file to read (default: %(default)s)",
    )
    settings.add_argument(
        "--catalog",
        type=Path,
        help="Playlist catalog JSON file (default: the bundled catalog)",
    )
    settings.add_argument(
        "--player",
        dest="preferred_player",
        help="Media player to try first; mpv, vlc and ffplay are tried after it",
    )
    settings.add_argument(
        "--theme",
        help=f"Colour theme, one of: {', '.join(_theme_names())}.",
    )

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log-level", help="Log level for this run (overrides NEXGEN_TV_LOG_LEVEL)"
    )
    logging_group.add_argument(
        "--log-file",
        type=Path,
        help="Log file for this run (overrides NEXGEN_TV_LOG_FILE)",
    )

    tools = parser.add_mutually_exclusive_group()
    tools.add_argument(
        "--list-themes", action="store_true", help="Print the theme names and exit."
    )
    tools.add_argument(
        "--parse",
        metavar="SOURCE",
        help="Print the channels of a playlist file or URL and exit.",
    )
    tools.add_argument(
        "--check-player",
        action="store_true",
        help="Report which media player would be used and exit.",
    )
    return parser.parse_args(argv)


def _effective_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config)
    if args.catalog is not None:
        config.catalog_path = args.catalog
    if args.preferred_player:
        config.preferred_player = args.preferred_player
    if args.theme:
        config.theme = args.theme
    return config


def _print_channels(source: str, *, user_agent: str | None, timeout: float) -> int:
    try:
        channels = load_playlist(source, user_agent=user_agent, timeout=timeout)
    except PlaylistFetchError as exc:
        log.error("%s", exc)
        print(f"Failed to load playlist: {exc}")
        return 1
    if not channels:
        print("No channels found in this playlist.")
    for channel in channels:
        print(f"{channel.id}. {channel.name} [{channel.category}] {channel.url}")
    return 0


def _check_player(preferred: str | None) -> int:
    try:
        summary = probe_player(preferred)
    except PlaybackError as exc:
        log.error("%s", exc)
        print(f"Player check failed: {exc}")
        return 1
    print(summary)
    return 0


def _run_tool(args: argparse.Namespace, config: AppConfig) -> int | None:
    """Run the one-shot utility requested on the command line, if any."""

    if args.check_player:
        return _check_player(config.preferred_player)
    if args.parse:
        return _print_channels(
            args.parse, user_agent=config.user_agent, timeout=config.fetch_timeout
        )
    return None


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    if args.list_themes:
        print("\n".join(_theme_names()))
        return
    configure_logging(
        level=args.log_level,
        log_file=None if args.log_file is None else str(args.log_file),
    )
    config = _effective_config(args)

    status = _run_tool(args, config)
    if status is not None:
        if status:
            raise SystemExit(status)
        return

    log.info("Starting NexGen TV (config %s)", args.config)
    try:
        NexGenApp(config, config_path=args.config).run()
    except KeyboardInterrupt:
        log.info("Interrupted; shutting down")
        raise SystemExit(130) from None


if __name__ == "__main__":  # pragma: no cover
    main()
