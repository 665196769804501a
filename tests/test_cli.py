"""Tests for the command line interface helpers."""
from __future__ import annotations

from pathlib import Path

import pytest

from nexgen_tv import cli
from nexgen_tv.config import AppConfig
from nexgen_tv.player import PlaybackError
from nexgen_tv.themes import CUSTOM_THEMES


PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-logo="http://logo/a.png" group-title="News",News One
http://example.com/news.m3u8
#EXTINF:-1,Movies
http://example.com/movies.m3u8
"""


@pytest.fixture(autouse=True)
def _isolated_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


def test_help_lists_all_themes(capsys: pytest.CaptureFixture[str]) -> None:
    """The --theme help text should reflect the packaged theme catalog."""

    with pytest.raises(SystemExit):
        cli.parse_args(["--help"])

    # Ignore wrapping so hyphenated names split across lines still match.
    help_text = "".join(capsys.readouterr().out.split())
    for theme_name in sorted(CUSTOM_THEMES):
        assert theme_name in help_text


def test_list_themes_short_circuits_main(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """--list-themes should print the catalog without instantiating the app."""

    def _unexpected_app(*args, **kwargs):  # pragma: no cover - only used when failing
        raise AssertionError("NexGenApp should not be constructed when listing themes")

    monkeypatch.setattr(cli, "NexGenApp", _unexpected_app)

    cli.main(["--list-themes"])

    captured = capsys.readouterr().out.strip().splitlines()
    assert captured == sorted(CUSTOM_THEMES)


def test_parse_prints_channels(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """--parse should list the playlist's channels without starting the TUI."""

    source = tmp_path / "playlist.m3u"
    source.write_text(PLAYLIST, encoding="utf8")

    def _unexpected_app(*args, **kwargs):  # pragma: no cover - sanity check
        raise AssertionError("NexGenApp should not start when parsing a playlist")

    monkeypatch.setattr(cli, "NexGenApp", _unexpected_app)

    cli.main(["--config", str(tmp_path / "config.yaml"), "--parse", str(source)])

    captured = capsys.readouterr().out.strip().splitlines()
    assert captured == [
        "1. News One [News] http://example.com/news.m3u8",
        "2. Movies [Uncategorized] http://example.com/movies.m3u8",
    ]


def test_parse_reports_missing_source(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "--config",
                str(tmp_path / "config.yaml"),
                "--parse",
                str(tmp_path / "missing.m3u"),
            ]
        )

    assert excinfo.value.code == 1
    assert "Failed to load playlist" in capsys.readouterr().out


def test_overrides_reach_the_app(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Command line flags take precedence over the configuration file."""

    config_path = tmp_path / "config.yaml"
    config_path.write_text("preferred_player: vlc\ntheme: nexgen-light\n", encoding="utf8")
    created: list[AppConfig] = []
    saved_to: list[Path] = []

    class DummyApp:
        def __init__(self, config: AppConfig, *, config_path: Path) -> None:
            created.append(config)
            saved_to.append(config_path)

        def run(self) -> None:
            pass

    monkeypatch.setattr(cli, "NexGenApp", DummyApp)

    cli.main(
        [
            "--config",
            str(config_path),
            "--player",
            "mpv",
            "--catalog",
            str(tmp_path / "catalog.json"),
        ]
    )

    assert len(created) == 1
    config = created[0]
    assert config.preferred_player == "mpv"
    assert config.theme == "nexgen-light"
    assert config.catalog_path == tmp_path / "catalog.json"
    assert saved_to == [config_path]


def test_keyboard_interrupt_exits_with_130(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    class InterruptedApp:
        def __init__(self, config: AppConfig, **kwargs) -> None:
            pass

        def run(self) -> None:
            raise KeyboardInterrupt

    monkeypatch.setattr(cli, "NexGenApp", InterruptedApp)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path / "config.yaml")])

    assert excinfo.value.code == 130


def test_check_player_reports_probe_result(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    probed: list[object] = []

    def fake_probe(preferred=None):
        probed.append(preferred)
        return "mpv 0.38.0"

    monkeypatch.setattr(cli, "probe_player", fake_probe)

    cli.main(["--config", str(tmp_path / "config.yaml"), "--player", "mpv", "--check-player"])

    assert probed == ["mpv"]
    assert capsys.readouterr().out.strip() == "mpv 0.38.0"


def test_check_player_failure_exits_nonzero(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def failing_probe(preferred=None):
        raise PlaybackError("No supported media player found (mpv, vlc, ffplay)")

    monkeypatch.setattr(cli, "probe_player", failing_probe)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path / "config.yaml"), "--check-player"])

    assert excinfo.value.code == 1
