from pathlib import Path

import pytest

from nexgen_tv.playlist import (
    ChannelRecord,
    PlaylistFetchError,
    fetch_playlist,
    filter_channels,
    load_playlist,
    parse_playlist,
)


SAMPLE_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="one" tvg-logo="http://logo/1.png" group-title="News",Channel One
http://example.com/stream1
#EXTINF:-1 tvg-id="two" group-title="sport",Channel Two
http://example.com/stream2
#EXTINF:-1,Channel Three
http://example.com/stream3
"""


def test_parse_single_entry_with_attributes():
    channels = parse_playlist('#EXTINF:-1 tvg-logo="L" group-title="G",Name\nhttp://x')
    assert channels == [
        ChannelRecord(id=1, name="Name", url="http://x", logo="L", category="G")
    ]


def test_parse_playlist_defaults():
    channels = parse_playlist(SAMPLE_PLAYLIST)
    assert [channel.id for channel in channels] == [1, 2, 3]
    third = channels[2]
    assert third.name == "Channel Three"
    assert third.logo is None
    assert third.category == "Uncategorized"
    assert channels[0].logo == "http://logo/1.png"


def test_metadata_followed_by_metadata_is_dropped():
    channels = parse_playlist("#EXTINF:-1,OnlyName\n#EXTINF:-1,NextOne\nhttp://y")
    assert [(channel.name, channel.url) for channel in channels] == [("NextOne", "http://y")]
    assert channels[0].id == 1


def test_entries_without_url_are_skipped():
    text = "\n".join(
        [
            "#EXTINF:-1,Comment follows",
            "#EXTVLCOPT:http-user-agent=Foo",
            "http://orphan",
            "#EXTINF:-1,Blank follows",
            "   ",
            "#EXTINF:-1,Good",
            "http://good",
            "#EXTINF:-1,End of input",
        ]
    )
    channels = parse_playlist(text)
    assert [channel.name for channel in channels] == ["Good"]
    assert all(channel.url for channel in channels)


def test_consumed_url_line_is_not_reparsed():
    text = "#EXTINF:-1,First\n#EXTINF:-1,Second\n#EXTINF:-1,Third\nhttp://third"
    channels = parse_playlist(text)
    assert [channel.name for channel in channels] == ["Third"]


def test_name_uses_text_after_last_comma():
    channels = parse_playlist('#EXTINF:-1 tvg-name="A, B",Real Name \nhttp://x')
    assert channels[0].name == "Real Name"


def test_missing_comma_uses_placeholder_name():
    channels = parse_playlist("#EXTINF:-1\nhttp://x")
    assert channels[0].name == "Unknown Channel"


def test_parse_handles_crlf_and_surrounding_whitespace():
    channels = parse_playlist("#EXTM3U\r\n#EXTINF:-1,Name\r\n  http://x  \r\n")
    assert channels[0].url == "http://x"


def test_markers_only_count_at_line_start():
    channels = parse_playlist("#EXTINF:-1,X\n  #EXTINF:-1,Y\nhttp://y")
    assert [(channel.name, channel.url) for channel in channels] == [("X", "#EXTINF:-1,Y")]

    assert parse_playlist("  #EXTINF:-1,Indented\nhttp://z") == []


def test_leading_byte_order_mark_is_ignored(tmp_path: Path):
    channels = parse_playlist("\ufeff#EXTINF:-1,Bom\nhttp://bom")
    assert [channel.name for channel in channels] == ["Bom"]

    path = tmp_path / "bom.m3u"
    path.write_bytes("#EXTINF:-1,Bom\nhttp://bom\n".encode("utf-8-sig"))
    assert not fetch_playlist(path).startswith("\ufeff")
    assert [channel.url for channel in load_playlist(path)] == ["http://bom"]


@pytest.mark.parametrize("text", ["", "#EXTM3U", "http://a\nhttp://b", "\n\n"])
def test_parse_without_metadata_yields_nothing(text):
    assert parse_playlist(text) == []


def test_filter_is_case_insensitive_on_category_and_name():
    channels = parse_playlist(SAMPLE_PLAYLIST)
    assert [channel.name for channel in filter_channels(channels, "SPORT")] == ["Channel Two"]
    assert [channel.name for channel in filter_channels(channels, "three")] == ["Channel Three"]


def test_filter_preserves_parse_order_and_empty_term_restores_all():
    channels = parse_playlist(SAMPLE_PLAYLIST)
    assert filter_channels(channels, "channel") == channels
    assert filter_channels(channels, "") == channels
    assert filter_channels(channels, "   ") == channels
    assert filter_channels(channels, "nothing matches") == []


def test_fetch_playlist_reads_local_file(tmp_path: Path):
    path = tmp_path / "list.m3u"
    path.write_text(SAMPLE_PLAYLIST, encoding="utf8")
    progress: list[int] = []
    text = fetch_playlist(path, progress=lambda loaded, total: progress.append(loaded))
    assert text == SAMPLE_PLAYLIST
    assert progress and progress[-1] == len(SAMPLE_PLAYLIST.encode("utf8"))
    assert len(load_playlist(path)) == 3


def test_fetch_playlist_missing_file(tmp_path: Path):
    with pytest.raises(PlaylistFetchError):
        fetch_playlist(tmp_path / "missing.m3u")


def test_fetch_playlist_uses_custom_user_agent(monkeypatch):
    payload = SAMPLE_PLAYLIST.encode("utf8")

    class DummyResponse:
        def __init__(self) -> None:
            self._offset = 0
            self.length = len(payload)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def read(self, size: int) -> bytes:
            chunk = payload[self._offset : self._offset + size]
            self._offset += len(chunk)
            return chunk

    captured: dict[str, object] = {}

    def fake_urlopen(req, timeout: float = 0.0):
        captured["timeout"] = timeout
        captured["user_agent"] = req.get_header("User-agent")
        return DummyResponse()

    monkeypatch.setattr("nexgen_tv.playlist.request.urlopen", fake_urlopen)

    text = fetch_playlist("https://example.com/list.m3u", user_agent="NexGen/1.0", timeout=5.0)

    assert text == SAMPLE_PLAYLIST
    assert captured == {"timeout": 5.0, "user_agent": "NexGen/1.0"}


def test_fetch_playlist_wraps_network_errors(monkeypatch):
    from urllib.error import URLError

    def fake_urlopen(req, timeout: float = 0.0):
        raise URLError("unreachable")

    monkeypatch.setattr("nexgen_tv.playlist.request.urlopen", fake_urlopen)

    with pytest.raises(PlaylistFetchError) as excinfo:
        fetch_playlist("http://example.com/list.m3u")
    assert "unreachable" in str(excinfo.value)
