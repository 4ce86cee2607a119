from pathlib import Path
from urllib.error import HTTPError, URLError

import pytest

from m3upt_tui.playlist import (
    Channel,
    LoadError,
    PlaylistError,
    load_playlist,
    parse_attributes,
    parse_name,
    parse_playlist,
)


EXAMPLE_PLAYLIST = (
    '#EXTINF:-1 group-title="News",ACME News\n'
    "http://x/1\n"
    "#EXTINF:-1,Jazz FM\n"
    "http://x/2"
)

SAMPLE_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="rtp1.pt" tvg-logo="http://logo/rtp1.png" group-title="Generalistas",RTP 1
https://stream.example/rtp1.m3u8
#EXTINF:-1 tvg-id="sic.pt" group-title="Generalistas",SIC
https://stream.example/sic.m3u8
#EXTINF:-1 tvg-id="tsf.pt" group="Rádio",TSF
https://stream.example/tsf.m3u8
"""


def test_parse_playlist_example():
    channels = parse_playlist(EXAMPLE_PLAYLIST)
    assert len(channels) == 2
    first, second = channels
    assert (first.name, first.url, first.group) == ("ACME News", "http://x/1", "News")
    assert (second.name, second.url, second.group) == ("Jazz FM", "http://x/2", None)
    assert second.attributes == {}


def test_parse_playlist_resolves_group_and_logo():
    channels = parse_playlist(SAMPLE_PLAYLIST)
    assert [channel.name for channel in channels] == ["RTP 1", "SIC", "TSF"]
    rtp1 = channels[0]
    assert rtp1.logo == "http://logo/rtp1.png"
    assert rtp1.attributes["tvg-id"] == "rtp1.pt"
    assert list(rtp1.attributes) == ["tvg-id", "tvg-logo", "group-title"]
    assert channels[1].logo is None
    assert channels[2].group == "Rádio"


def test_group_title_wins_over_group_and_empty_falls_back():
    text = (
        '#EXTINF:-1 group="Fallback" group-title="Primary",One\nhttp://a\n'
        '#EXTINF:-1 group-title="" group="Fallback",Two\nhttp://b\n'
        '#EXTINF:-1 group-title="",Three\nhttp://c\n'
    )
    channels = parse_playlist(text)
    assert [channel.group for channel in channels] == ["Primary", "Fallback", None]


def test_marker_without_locator_before_eof_is_dropped():
    text = "#EXTINF:-1,Good\nhttp://good\n#EXTINF:-1,Orphan\n\n   \n#EXTVLCOPT:foo=bar\n"
    channels = parse_playlist(text)
    assert [channel.name for channel in channels] == ["Good"]
    assert parse_playlist("#EXTINF:-1,Orphan") == []


def test_blank_and_comment_lines_are_skipped_before_url():
    text = "#EXTINF:-1,Spaced\n\n   \t\n#EXTVLCOPT:http-user-agent=x\n  http://spaced/stream  \n"
    channels = parse_playlist(text)
    assert len(channels) == 1
    assert channels[0].url == "http://spaced/stream"


def test_url_scan_consumes_following_marker_lines():
    text = "#EXTINF:-1,First\n#EXTINF:-1,Second\nhttp://only\n"
    channels = parse_playlist(text)
    assert [(channel.name, channel.url) for channel in channels] == [("First", "http://only")]


def test_non_marker_lines_are_ignored():
    text = "#EXTM3U\nhttp://stray\n# comment\n#EXTINF:-1,Real\r\nhttp://real\r\n"
    channels = parse_playlist(text)
    assert [(channel.name, channel.url) for channel in channels] == [("Real", "http://real")]


def test_marker_prefix_is_case_sensitive():
    assert parse_playlist("#extinf:-1,Lower\nhttp://lower\n") == []


def test_marker_line_is_trimmed_before_matching():
    channels = parse_playlist("   #EXTINF:-1,Indented  \nhttp://indented\n")
    assert channels[0].name == "Indented"


def test_empty_name_is_kept():
    channels = parse_playlist('#EXTINF:-1 tvg-id="x"\nhttp://no-name\n#EXTINF:-1,\nhttp://blank\n')
    assert [channel.name for channel in channels] == ["", ""]
    assert all(channel.url for channel in channels)


def test_parse_name_uses_last_comma():
    assert parse_name('#EXTINF:-1 group-title="A, B",Name') == "Name"
    assert parse_name("#EXTINF:-1,Foo, Bar ") == "Bar"
    assert parse_name("#EXTINF:-1") == ""


def test_parse_attributes_last_key_wins_and_keeps_order():
    attributes = parse_attributes('#EXTINF:-1 a="1" b="2" a="3",Name')
    assert attributes == {"a": "3", "b": "2"}
    assert list(attributes) == ["a", "b"]


def test_parse_attributes_has_no_escape_processing():
    attributes = parse_attributes(r'#EXTINF:-1 tvg-name="Say \"hi\"" x_y-z="ok",N')
    assert attributes["tvg-name"] == "Say \\"
    assert attributes["x_y-z"] == "ok"


def test_parse_playlist_is_idempotent():
    assert parse_playlist(SAMPLE_PLAYLIST) == parse_playlist(SAMPLE_PLAYLIST)


def test_parse_playlist_accepts_lines():
    assert parse_playlist(EXAMPLE_PLAYLIST.splitlines()) == parse_playlist(EXAMPLE_PLAYLIST)


def test_channel_is_immutable_and_labelled():
    channel = Channel(name="Jazz FM", url="http://x/2")
    with pytest.raises(AttributeError):
        channel.name = "Other"  # type: ignore[misc]
    assert channel.label() == "Jazz FM"
    assert Channel(name="ACME", url="http://x", group="News").label() == "ACME · News"


def test_channel_attributes_are_read_only():
    source = {"group-title": "News"}
    channel = Channel(name="ACME", url="http://x", group="News", attributes=source)
    with pytest.raises(TypeError):
        channel.attributes["group-title"] = "Other"  # type: ignore[index]
    source["group-title"] = "Changed"
    assert channel.attributes == {"group-title": "News"}

    parsed = parse_playlist(EXAMPLE_PLAYLIST)[0]
    with pytest.raises(TypeError):
        parsed.attributes["group-title"] = "Other"  # type: ignore[index]
    assert parsed.attributes["group-title"] == "News"


class DummyResponse:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self._payload


def test_load_playlist_from_url_sends_user_agent(monkeypatch):
    captured: dict[str, object] = {}

    def fake_urlopen(req, timeout: float = 0.0):  # pragma: no cover - network shim
        captured["timeout"] = timeout
        captured["user_agent"] = req.get_header("User-agent")
        captured["url"] = req.full_url
        return DummyResponse(SAMPLE_PLAYLIST.encode("utf8"))

    monkeypatch.setattr("m3upt_tui.playlist.request.urlopen", fake_urlopen)

    channels = load_playlist(
        "https://example.com/playlist.m3u", timeout=5.0, user_agent="M3UPT/1.0"
    )
    assert [channel.name for channel in channels] == ["RTP 1", "SIC", "TSF"]
    assert captured == {
        "timeout": 5.0,
        "user_agent": "M3UPT/1.0",
        "url": "https://example.com/playlist.m3u",
    }


def test_load_playlist_http_error_is_load_error(monkeypatch):
    def fake_urlopen(req, timeout: float = 0.0):  # pragma: no cover - network shim
        raise HTTPError(req.full_url, 404, "Not Found", hdrs=None, fp=None)

    monkeypatch.setattr("m3upt_tui.playlist.request.urlopen", fake_urlopen)

    with pytest.raises(LoadError) as excinfo:
        load_playlist("https://example.com/missing.m3u")
    assert "404 Not Found" in str(excinfo.value)


def test_load_playlist_network_error_is_load_error(monkeypatch):
    def fake_urlopen(req, timeout: float = 0.0):  # pragma: no cover - network shim
        raise URLError("timed out")

    monkeypatch.setattr("m3upt_tui.playlist.request.urlopen", fake_urlopen)

    with pytest.raises(LoadError):
        load_playlist("http://example.com/slow.m3u")


def test_load_playlist_from_file(tmp_path: Path):
    playlist = tmp_path / "channels.m3u"
    playlist.write_text(SAMPLE_PLAYLIST, encoding="utf8")
    channels = load_playlist(playlist)
    assert len(channels) == 3


def test_load_playlist_without_channels_raises(tmp_path: Path):
    playlist = tmp_path / "empty.m3u"
    playlist.write_text("#EXTM3U\n#EXTINF:-1,Orphan\n", encoding="utf8")
    with pytest.raises(LoadError, match="No channels found"):
        load_playlist(playlist)


def test_load_playlist_missing_file(tmp_path: Path):
    with pytest.raises(PlaylistError):
        load_playlist(tmp_path / "absent.m3u")
