from pathlib import Path

from nexgen_tv.config import DEFAULT_FETCH_TIMEOUT, AppConfig, load_config, save_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path / "config.yaml")
    assert config == AppConfig()


def test_load_and_save_round_trip(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.yaml"
    config = AppConfig(
        catalog_path=tmp_path / "catalog.json",
        preferred_player="vlc",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        theme="nexgen-light",
        fetch_timeout=12.5,
    )
    save_config(config, config_path)
    assert "theme: nexgen-light" in config_path.read_text().splitlines()
    assert load_config(config_path) == config


def test_load_config_accepts_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text('{"preferred_player": "mpv", "fetch_timeout": 5}', encoding="utf8")
    config = load_config(config_path)
    assert config.preferred_player == "mpv"
    assert config.fetch_timeout == 5.0


def test_invalid_values_fall_back_to_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "# comment\nfetch_timeout: soon\nnot a setting\ntheme: ''\n", encoding="utf8"
    )
    config = load_config(config_path)
    assert config.fetch_timeout == DEFAULT_FETCH_TIMEOUT
    assert config.theme is None


def test_negative_timeout_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("fetch_timeout: -1\n", encoding="utf8")
    assert load_config(config_path).fetch_timeout == DEFAULT_FETCH_TIMEOUT
