"""Typed player commands understood by the command line in the player view."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandKind(Enum):
    NEXT = "next"
    PREVIOUS = "previous"
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    BACK = "back"
    SELECT = "select"
    UNKNOWN = "unknown"


_LITERALS: dict[str, CommandKind] = {
    "next": CommandKind.NEXT,
    "prev": CommandKind.PREVIOUS,
    "previous": CommandKind.PREVIOUS,
    "play": CommandKind.PLAY,
    "pause": CommandKind.PAUSE,
    "stop": CommandKind.STOP,
    "back": CommandKind.BACK,
}

COMMAND_HELP = "Commands: next, prev, play, pause, stop, back, or enter a channel number"


@dataclass(frozen=True, slots=True)
class Command:
    """A parsed command line entry."""

    kind: CommandKind
    number: Optional[int] = None
    raw: str = ""


def parse_command(raw: str) -> Command:
    """Turn the submitted command text into a :class:`Command`.

    Channel numbers are returned as ``SELECT`` without a range check since the
    valid range depends on the list currently on screen.
    """

    text = raw.strip().lower()
    kind = _LITERALS.get(text)
    if kind is not None:
        return Command(kind, raw=text)
    if text.isascii() and text.isdigit():
        return Command(CommandKind.SELECT, number=int(text), raw=text)
    return Command(CommandKind.UNKNOWN, raw=text)


__all__ = ["COMMAND_HELP", "Command", "CommandKind", "parse_command"]
