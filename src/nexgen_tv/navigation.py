"""Channel selection state and the command-driven navigation controller."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from .commands import Command, CommandKind, parse_command
from .logging_utils import get_logger
from .player import PlaybackEngine, PlaybackError
from .playlist import ChannelRecord, filter_channels

log = get_logger(__name__)

NOT_FOUND = -1


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Immutable snapshot of the channel browser.

    ``selected_index`` is ``None`` when nothing is selected and ``-1`` when the
    selected channel is not part of ``active_list``. It is only changed by
    explicit selection; a new search term leaves it as it was.
    """

    channels: tuple[ChannelRecord, ...] = ()
    search_term: str = ""
    active_list: tuple[ChannelRecord, ...] = ()
    selected: Optional[ChannelRecord] = None
    selected_index: Optional[int] = None
    command_buffer: str = ""

    @classmethod
    def create(cls, channels: Iterable[ChannelRecord]) -> "NavigationState":
        items = tuple(channels)
        return cls(channels=items, active_list=items)

    def with_search_term(self, term: str) -> "NavigationState":
        return replace(
            self,
            search_term=term,
            active_list=tuple(filter_channels(self.channels, term)),
        )

    def with_selection(self, record: Optional[ChannelRecord]) -> "NavigationState":
        if record is None:
            return replace(self, selected=None, selected_index=None)
        index = next(
            (
                position
                for position, candidate in enumerate(self.active_list)
                if candidate.url == record.url
            ),
            NOT_FOUND,
        )
        return replace(self, selected=record, selected_index=index)

    def with_buffer(self, text: str) -> "NavigationState":
        return replace(self, command_buffer=text)

    def step(self, offset: int) -> Optional[int]:
        """Return the index reached by moving *offset* places, wrapping around."""

        total = len(self.active_list)
        if total == 0:
            return None
        current = self.selected_index
        if current is None or current == NOT_FOUND:
            # Forward starts before the first entry, backward after the last.
            current = NOT_FOUND if offset > 0 else total
        return (current + offset) % total

    @property
    def position_label(self) -> str:
        current = NOT_FOUND if self.selected_index is None else self.selected_index
        return f"Channel {current + 1} of {len(self.active_list)}"


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """What :meth:`NavigationController.interpret_command` did."""

    command: Command
    applied: bool = False
    exited: bool = False
    selected: Optional[ChannelRecord] = None


class NavigationController:
    """Own the navigation state and the single playback session.

    The controller holds the only reference to the playback engine's session:
    it is released before every new selection, on ``stop``/``back`` and when
    :meth:`close` is called as the view goes away.
    """

    def __init__(
        self,
        channels: Iterable[ChannelRecord],
        engine: PlaybackEngine,
        *,
        search_term: str = "",
    ) -> None:
        self._state = NavigationState.create(channels).with_search_term(search_term)
        self._engine = engine
        self._closed = False
        log.debug("Navigation ready with %d channel(s)", len(self._state.channels))

    def __enter__(self) -> "NavigationController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def active_list(self) -> tuple[ChannelRecord, ...]:
        return self._state.active_list

    @property
    def selected(self) -> Optional[ChannelRecord]:
        return self._state.selected

    @property
    def selected_index(self) -> Optional[int]:
        return self._state.selected_index

    @property
    def command_buffer(self) -> str:
        return self._state.command_buffer

    def set_search_term(self, term: str) -> None:
        self._state = self._state.with_search_term(term)
        log.debug(
            "Search term %r leaves %d of %d channel(s)",
            term,
            len(self._state.active_list),
            len(self._state.channels),
        )

    def set_command_buffer(self, text: str) -> None:
        self._state = self._state.with_buffer(text)

    def select_channel(self, record: ChannelRecord) -> None:
        """Select *record* and start playing it."""

        self._release()
        self._state = self._state.with_selection(record)
        log.info(
            "Selected %s (%s)", record.name, self._state.position_label
        )
        try:
            self._engine.start(record.url, title=record.name)
        except PlaybackError as exc:
            log.error("Failed to start playback of %s: %s", record.name, exc)

    def select_index(self, index: int) -> ChannelRecord:
        record = self._state.active_list[index]
        self.select_channel(record)
        return record

    def interpret_command(self, raw: Optional[str] = None) -> CommandOutcome:
        """Run the submitted command, defaulting to the current buffer.

        Unknown commands and out-of-range channel numbers are ignored. The
        buffer is cleared whatever the outcome.
        """

        text = self._state.command_buffer if raw is None else raw
        command = parse_command(text)
        self._state = self._state.with_buffer("")
        outcome = self._dispatch(command)
        log.debug(
            "Command %r -> %s (applied=%s)", text, command.kind.name, outcome.applied
        )
        return outcome

    def _dispatch(self, command: Command) -> CommandOutcome:
        kind = command.kind
        if kind is CommandKind.NEXT:
            return self._step(command, 1)
        if kind is CommandKind.PREVIOUS:
            return self._step(command, -1)
        if kind is CommandKind.PLAY:
            return self._control(command, resume=True)
        if kind is CommandKind.PAUSE:
            return self._control(command, resume=False)
        if kind in (CommandKind.STOP, CommandKind.BACK):
            self.stop()
            return CommandOutcome(command, applied=True, exited=True)
        if kind is CommandKind.SELECT:
            number = command.number or 0
            if 1 <= number <= len(self._state.active_list):
                record = self.select_index(number - 1)
                return CommandOutcome(command, applied=True, selected=record)
            return CommandOutcome(command)
        if kind is CommandKind.UNKNOWN:
            return CommandOutcome(command)
        raise AssertionError(f"Unhandled command kind: {kind}")

    def _step(self, command: Command, offset: int) -> CommandOutcome:
        target = self._state.step(offset)
        if target is None:
            return CommandOutcome(command)
        record = self.select_index(target)
        return CommandOutcome(command, applied=True, selected=record)

    def _control(self, command: Command, *, resume: bool) -> CommandOutcome:
        if not self._engine.active:
            return CommandOutcome(command)
        try:
            if resume:
                self._engine.resume()
            else:
                self._engine.pause()
        except PlaybackError as exc:
            log.error("Failed to %s playback: %s", command.kind.value, exc)
        return CommandOutcome(command, applied=True, selected=self._state.selected)

    def _release(self) -> None:
        self._engine.dispose()

    def stop(self) -> None:
        """Tear down playback and forget the selection."""

        self._release()
        self._state = self._state.with_selection(None)
        log.info("Playback stopped")

    def close(self) -> None:
        """Release the playback session when the view is left."""

        if self._closed:
            return
        self._closed = True
        self._release()
        self._state = self._state.with_selection(None)
        log.debug("Navigation closed")


__all__ = [
    "CommandOutcome",
    "NOT_FOUND",
    "NavigationController",
    "NavigationState",
]
