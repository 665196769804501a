"""Textual application: catalog, playlist and player views."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

try:
    from textual import on
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Vertical
    from textual.reactive import reactive
    from textual.widgets import (
        ContentSwitcher,
        Footer,
        Header,
        Input,
        Label,
        ListItem,
        ListView,
        Static,
    )
except ModuleNotFoundError as exc:  # pragma: no cover - dependency guard
    raise ModuleNotFoundError(
        "The 'textual' package is required to run nexgen_tv. "
        "Install dependencies with 'pip install -e .[dev]'."
    ) from exc

from rich.markup import escape

from .catalog import (
    CatalogError,
    CountryEntry,
    PlaylistDescriptor,
    count_playlists,
    filter_catalog,
    load_catalog,
)
from .commands import COMMAND_HELP
from .config import CONFIG_PATH, AppConfig, save_config
from .log_viewer import LogViewer
from .logging_utils import detach_console_handler, get_logger
from .navigation import NavigationController
from .player import PlaybackEngine, ProcessPlaybackEngine
from .playlist import ChannelRecord, PlaylistFetchError, fetch_playlist, parse_playlist
from .themes import CUSTOM_THEMES, DEFAULT_THEME_NAME

log = get_logger(__name__)

COUNTRIES_VIEW = "countries-view"
PLAYLIST_VIEW = "playlist-view"
PLAYER_VIEW = "player-view"

FETCH_FAILED_MESSAGE = "Failed to load playlist channels."
EMPTY_PLAYLIST_MESSAGE = "No channels found in this playlist."


class StatusBar(Static):
    """A simple status bar widget."""

    status: reactive[str] = reactive("Ready")

    def watch_status(self, status: str) -> None:
        self.update(status)


class PlaylistListItem(ListItem):
    """A catalog playlist, prefixed with its country."""

    def __init__(self, country: CountryEntry, playlist: PlaylistDescriptor) -> None:
        self.country = country
        self.playlist = playlist
        super().__init__(
            Label(
                f"[b]{escape(country.country)}[/b] • {escape(playlist.name)}"
                f"  [dim]{escape(playlist.category)}[/dim]",
                markup=True,
            )
        )


class ChannelListItem(ListItem):
    """A channel row numbered the way the command line expects."""

    def __init__(self, position: int, channel: ChannelRecord) -> None:
        self.position = position
        self.channel = channel
        super().__init__(
            Label(
                f"{position:>4}. {escape(channel.name)}"
                f"  [dim]{escape(channel.category)}[/dim]",
                markup=True,
            )
        )


# Inline stylesheet; the package ships no .tcss file.
_INLINE_DEFAULT_CSS = """
#views {
    height: 1fr;
}

#countries-view,
#playlist-view,
#player-view {
    layout: vertical;
    height: 1fr;
    padding: 0 1;
}

#catalog-list,
#channel-list {
    height: 1fr;
    border: heavy $surface;
}

#catalog-summary,
#playlist-summary,
#playlist-title {
    padding: 0 1;
    color: $text-muted;
}

#now-playing {
    border: heavy $surface;
    padding: 1;
    height: 1fr;
}

#command-help {
    padding: 0 1;
    color: $text-muted;
}

#log-viewer {
    border: heavy $surface;
    padding: 0 1;
    height: 12;
    overflow-y: auto;
    display: none;
}

StatusBar {
    padding: 0 1;
}
"""


class NexGenApp(App[None]):
    """Browse playlists by country and steer playback with typed commands."""

    TITLE = "NexGen TV"
    CSS = _INLINE_DEFAULT_CSS
    CHANNEL_RENDER_LIMIT = 1000
    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("escape", "back", "Back"),
        Binding("/", "focus_search", "Search"),
        Binding("f2", "toggle_logs", "Logs"),
        Binding("f3", "cycle_theme", "Theme"),
    ]

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        config_path: Optional[Path] = None,
        countries: Optional[Sequence[CountryEntry]] = None,
        engine: Optional[PlaybackEngine] = None,
    ) -> None:
        super().__init__()
        self._config = config or AppConfig()
        self._config_path = config_path or CONFIG_PATH
        for theme in CUSTOM_THEMES.values():
            self.register_theme(theme)
        self._apply_requested_theme(self._config.theme)
        self._catalog_error: Optional[str] = None
        if countries is None:
            countries = self._load_countries(self._config.catalog_path)
        self._countries: List[CountryEntry] = list(countries)
        self._visible_countries: List[CountryEntry] = list(self._countries)
        self._engine: PlaybackEngine = engine or ProcessPlaybackEngine(
            preferred=self._config.preferred_player
        )
        self._playlist: Optional[PlaylistDescriptor] = None
        self._navigation: Optional[NavigationController] = None
        self._playlist_loading = False
        self._playlist_error: Optional[str] = None
        self._load_generation = 0
        self._view = COUNTRIES_VIEW
        log.info(
            "NexGenApp initialized with %d playlist(s)", count_playlists(self._countries)
        )

    def _apply_requested_theme(self, requested: Optional[str]) -> None:
        preferred = requested or DEFAULT_THEME_NAME
        if self.get_theme(preferred) is None:
            log.warning(
                "Requested theme '%s' is unavailable; falling back to %s",
                requested,
                DEFAULT_THEME_NAME,
            )
            preferred = DEFAULT_THEME_NAME
        self.theme = preferred

    def _load_countries(self, path: Optional[Path]) -> List[CountryEntry]:
        try:
            return load_catalog(path)
        except CatalogError as exc:
            log.error("Failed to load channel data: %s", exc)
            self._catalog_error = "Failed to load channel data."
            return []

    @property
    def current_view(self) -> str:
        return self._view

    @property
    def navigation(self) -> Optional[NavigationController]:
        return self._navigation

    def compose(self) -> ComposeResult:
        yield Header()
        with ContentSwitcher(initial=COUNTRIES_VIEW, id="views"):
            with Vertical(id=COUNTRIES_VIEW):
                yield Input(placeholder="Search playlists…", id="catalog-search")
                yield Static("", id="catalog-summary")
                yield ListView(id="catalog-list")
            with Vertical(id=PLAYLIST_VIEW):
                yield Static("", id="playlist-title")
                yield Input(placeholder="Search channels…", id="channel-search")
                yield Static("", id="playlist-summary")
                yield ListView(id="channel-list")
            with Vertical(id=PLAYER_VIEW):
                yield Static("", id="now-playing")
                yield Input(
                    placeholder="Enter command (next, prev, play, pause, stop, back, or channel number)",
                    id="command",
                )
                yield Static(COMMAND_HELP, id="command-help")
        yield LogViewer(id="log-viewer")
        yield StatusBar(id="status")
        yield Footer()

    def on_mount(self) -> None:
        detach_console_handler()
        self._refresh_catalog()
        if self._catalog_error:
            self._set_status(self._catalog_error)
        self.query_one("#catalog-search", Input).focus()

    def on_unmount(self) -> None:
        self._close_navigation()

    # View switching -------------------------------------------------

    def _show_view(self, view: str) -> None:
        self._view = view
        self.query_one("#views", ContentSwitcher).current = view
        focus_target = {
            COUNTRIES_VIEW: "#catalog-search",
            PLAYLIST_VIEW: "#channel-list",
            PLAYER_VIEW: "#command",
        }[view]
        self.query_one(focus_target).focus()

    def _set_status(self, message: str) -> None:
        self.query_one(StatusBar).status = message

    def _close_navigation(self) -> None:
        if self._navigation is not None:
            self._navigation.close()
            self._navigation = None

    # Countries view -------------------------------------------------

    def _refresh_catalog(self) -> None:
        list_view = self.query_one("#catalog-list", ListView)
        list_view.clear()
        list_view.extend(
            PlaylistListItem(country, playlist)
            for country in self._visible_countries
            for playlist in country.playlists
        )
        self.query_one("#catalog-summary", Static).update(
            f"{count_playlists(self._visible_countries)} playlists available"
        )

    @on(Input.Changed, "#catalog-search")
    def _on_catalog_search(self, event: Input.Changed) -> None:
        self._visible_countries = filter_catalog(self._countries, event.value)
        self._refresh_catalog()

    @on(Input.Submitted, "#catalog-search")
    def _on_catalog_search_submitted(self, _: Input.Submitted) -> None:
        self.query_one("#catalog-list", ListView).focus()

    @on(ListView.Selected, "#catalog-list")
    def _on_playlist_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, PlaylistListItem):
            self.open_playlist(item.playlist)

    # Playlist view --------------------------------------------------

    def open_playlist(self, playlist: PlaylistDescriptor) -> None:
        """Switch to the playlist view and start fetching its channels."""

        self._close_navigation()
        self._load_generation += 1
        generation = self._load_generation
        self._playlist = playlist
        self._playlist_loading = True
        self._playlist_error = None
        self.sub_title = playlist.name
        self.query_one("#playlist-title", Static).update(
            f"[b]{escape(playlist.name)}[/b]  [dim]{escape(playlist.category)}[/dim]"
        )
        self.query_one("#channel-search", Input).value = ""
        self._refresh_channel_list()
        self._show_view(PLAYLIST_VIEW)
        self._set_status(f"Loading {playlist.name}…")
        log.info("Loading playlist %s from %s", playlist.name, playlist.url)
        self.run_worker(
            self._fetch_channels(playlist, generation),
            name=f"playlist:{playlist.name}",
            group="playlist",
            exclusive=True,
        )

    async def _fetch_channels(self, playlist: PlaylistDescriptor, generation: int) -> None:
        try:
            text = await asyncio.to_thread(
                fetch_playlist,
                playlist.url,
                user_agent=self._config.user_agent,
                timeout=self._config.fetch_timeout,
            )
        except PlaylistFetchError as exc:
            log.error("Error fetching playlist %s: %s", playlist.name, exc)
            self._handle_fetch_failure(generation, playlist)
            return
        self._handle_channels_loaded(generation, playlist, parse_playlist(text))

    def _is_stale(self, generation: int, playlist: PlaylistDescriptor) -> bool:
        if generation != self._load_generation or self._playlist is not playlist:
            log.info("Discarding stale result for playlist %s", playlist.name)
            return True
        return False

    def _handle_fetch_failure(self, generation: int, playlist: PlaylistDescriptor) -> None:
        if self._is_stale(generation, playlist):
            return
        self._playlist_loading = False
        self._playlist_error = FETCH_FAILED_MESSAGE
        self._navigation = NavigationController([], self._engine)
        self._refresh_channel_list()
        self._set_status(FETCH_FAILED_MESSAGE)

    def _handle_channels_loaded(
        self,
        generation: int,
        playlist: PlaylistDescriptor,
        channels: List[ChannelRecord],
    ) -> None:
        if self._is_stale(generation, playlist):
            return
        self._playlist_loading = False
        search = self.query_one("#channel-search", Input).value
        self._navigation = NavigationController(channels, self._engine, search_term=search)
        self._refresh_channel_list()
        self._set_status(f"Loaded {len(channels)} channels from {playlist.name}")

    def _refresh_channel_list(self) -> None:
        list_view = self.query_one("#channel-list", ListView)
        list_view.clear()
        summary = self.query_one("#playlist-summary", Static)
        if self._playlist_loading:
            summary.update("Loading playlist channels...")
            return
        if self._playlist_error:
            summary.update(self._playlist_error)
            return
        active = self._navigation.active_list if self._navigation else ()
        if not active:
            summary.update(EMPTY_PLAYLIST_MESSAGE)
            return
        shown = active[: self.CHANNEL_RENDER_LIMIT]
        list_view.extend(
            ChannelListItem(position, channel)
            for position, channel in enumerate(shown, start=1)
        )
        label = f"{len(active)} channels available"
        if len(shown) < len(active):
            label += f" (showing first {len(shown)}; search to narrow)"
        summary.update(label)

    @on(Input.Changed, "#channel-search")
    def _on_channel_search(self, event: Input.Changed) -> None:
        if self._navigation is None:
            return
        self._navigation.set_search_term(event.value)
        self._refresh_channel_list()

    @on(Input.Submitted, "#channel-search")
    def _on_channel_search_submitted(self, _: Input.Submitted) -> None:
        self.query_one("#channel-list", ListView).focus()

    @on(ListView.Selected, "#channel-list")
    def _on_channel_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, ChannelListItem):
            self.play_channel(item.channel)

    # Player view ----------------------------------------------------

    def play_channel(self, channel: ChannelRecord) -> None:
        if self._navigation is None:
            return
        self._navigation.select_channel(channel)
        self._refresh_player_info()
        self._show_view(PLAYER_VIEW)

    def _refresh_player_info(self) -> None:
        navigation = self._navigation
        channel = navigation.selected if navigation else None
        if navigation is None or channel is None:
            self.query_one("#now-playing", Static).update("Nothing selected")
            return
        lines = [
            f"[b]{escape(channel.name)}[/b]",
            f"[dim]{escape(channel.category)}[/dim]",
            "",
            navigation.state.position_label,
        ]
        if channel.logo:
            lines.append(f"Logo: {escape(channel.logo)}")
        self.query_one("#now-playing", Static).update("\n".join(lines))
        self._set_status(f"Playing {channel.name}")

    def _leave_player(self) -> None:
        if self._navigation is not None:
            self._navigation.stop()
        self._show_view(PLAYLIST_VIEW)
        self._set_status("Playback stopped")

    @on(Input.Changed, "#command")
    def _on_command_changed(self, event: Input.Changed) -> None:
        if self._navigation is not None:
            self._navigation.set_command_buffer(event.value)

    @on(Input.Submitted, "#command")
    def _on_command_submitted(self, event: Input.Submitted) -> None:
        event.input.value = ""
        if self._navigation is None:
            return
        outcome = self._navigation.interpret_command(event.value)
        if outcome.exited:
            self._show_view(PLAYLIST_VIEW)
            self._set_status("Playback stopped")
            return
        if outcome.applied:
            self._refresh_player_info()

    # Actions --------------------------------------------------------

    def action_back(self) -> None:
        if self._view == PLAYER_VIEW:
            self._leave_player()
        elif self._view == PLAYLIST_VIEW:
            self._close_navigation()
            self._load_generation += 1
            self._playlist = None
            self._playlist_loading = False
            self._playlist_error = None
            self.sub_title = ""
            self._show_view(COUNTRIES_VIEW)

    def action_focus_search(self) -> None:
        target = {
            COUNTRIES_VIEW: "#catalog-search",
            PLAYLIST_VIEW: "#channel-search",
            PLAYER_VIEW: "#command",
        }[self._view]
        self.query_one(target, Input).focus()

    def action_toggle_logs(self) -> None:
        viewer = self.query_one(LogViewer)
        viewer.display = not viewer.display

    def action_cycle_theme(self) -> None:
        """Switch to the next packaged theme and remember it."""

        names = sorted(CUSTOM_THEMES)
        current = names.index(self.theme) if self.theme in names else -1
        self.theme = names[(current + 1) % len(names)]
        self._config.theme = self.theme
        self._save_current_config()
        self._set_status(f"Theme: {self.theme}")

    def _save_current_config(self) -> None:
        log.debug("Persisting configuration to %s", self._config_path)
        try:
            save_config(self._config, self._config_path)
        except OSError as exc:
            log.warning("Could not save configuration to %s: %s", self._config_path, exc)


__all__ = ["NexGenApp", "ChannelListItem", "PlaylistListItem", "StatusBar"]
