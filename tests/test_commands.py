import pytest

from nexgen_tv.commands import Command, CommandKind, parse_command


@pytest.mark.parametrize(
    ("raw", "kind"),
    [
        ("next", CommandKind.NEXT),
        ("  NEXT  ", CommandKind.NEXT),
        ("prev", CommandKind.PREVIOUS),
        ("Previous", CommandKind.PREVIOUS),
        ("play", CommandKind.PLAY),
        ("pause", CommandKind.PAUSE),
        ("stop", CommandKind.STOP),
        ("back", CommandKind.BACK),
    ],
)
def test_literals(raw, kind):
    assert parse_command(raw).kind is kind


def test_numbers_become_select_commands():
    assert parse_command(" 12 ") == Command(CommandKind.SELECT, number=12, raw="12")
    assert parse_command("0") == Command(CommandKind.SELECT, number=0, raw="0")


@pytest.mark.parametrize("raw", ["", "   ", "-3", "+3", "3.5", "two", "nextt", "١٢"])
def test_everything_else_is_unknown(raw):
    command = parse_command(raw)
    assert command.kind is CommandKind.UNKNOWN
    assert command.number is None
