import pytest

from app.core.playlist import MalformedEntry
from app.core.playlist.parser import (
    has_media_suffix,
    iter_channels,
    iter_records,
    iter_variants,
    parse_channel_directive,
    parse_variant_attributes,
)
from app.core.playlist.types import ChannelDeclaration, VariantEntry


def test_channel_declaration_with_name_and_url():
    text = "#EXTM3U\n#EXTINF:-1,France 2\nhttps://x/fr2.m3u8\n"

    records = list(iter_records(text))

    assert len(records) == 1
    decl = records[0]
    assert isinstance(decl, ChannelDeclaration)
    assert decl.name == "France 2"
    assert decl.url == "https://x/fr2.m3u8"
    assert decl.line_no == 1
    assert decl.resource_line_no == 2


def test_channel_attributes_and_commas_inside_quotes():
    line = (
        '#EXTINF:-1 tvg-id="Canal.fr" tvg-logo="https://l.example/a,b.png" '
        'group-title="News",Canal+, HD'
    )

    name, attrs = parse_channel_directive(line)

    assert name == "Canal+, HD"
    assert attrs == {
        "tvg-id": "Canal.fr",
        "tvg-logo": "https://l.example/a,b.png",
        "group-title": "News",
    }


def test_channel_directive_without_name_segment_is_malformed():
    with pytest.raises(MalformedEntry):
        parse_channel_directive('#EXTINF:-1 tvg-id="x"')
    with pytest.raises(MalformedEntry):
        parse_channel_directive("#EXTINF:-1,   ")


def test_unterminated_quote_is_treated_as_absent():
    name, attrs = parse_channel_directive('#EXTINF:-1 tvg-logo="https://l.example/x.png,M6')

    assert name == "M6"
    assert "tvg-logo" not in attrs


def test_nameless_channel_is_skipped_not_fatal():
    text = (
        "#EXTINF:-1\n"
        "https://x/a.m3u8\n"
        "#EXTINF:-1,Arte\n"
        "https://x/arte.m3u8\n"
    )

    names = [c.name for c in iter_channels(text)]

    assert names == ["Arte"]


def test_declaration_followed_by_directive_is_dropped():
    text = (
        "#EXTINF:-1,Broken\n"
        "#EXTINF:-1,TF1\n"
        "https://x/tf1.m3u8\n"
        "#EXTINF:-1,Also Broken\n"
        "#EXT-X-SOMETHING\n"
        "https://x/orphan.m3u8\n"
    )

    names = [c.name for c in iter_channels(text)]

    assert names == ["TF1"]


def test_player_option_lines_are_tolerated():
    text = (
        "#EXTINF:-1,C8\n"
        "#EXTVLCOPT:http-user-agent=VLC\n"
        "#KODIPROP:inputstream=adaptive\n"
        "https://x/c8.m3u8\n"
    )

    (decl,) = list(iter_channels(text))

    assert decl.name == "C8"
    assert decl.options == (
        "#EXTVLCOPT:http-user-agent=VLC",
        "#KODIPROP:inputstream=adaptive",
    )
    assert decl.resource_line_no == 3


def test_media_suffix_filter_ignores_query_string():
    text = (
        "#EXTINF:-1,TF1\n"
        "https://x/tf1.m3u8?token=abc\n"
        "#EXTINF:-1,Radio\n"
        "https://x/radio.mp3\n"
    )

    names = [c.name for c in iter_channels(text, media_suffixes=(".m3u8",))]

    assert names == ["TF1"]
    assert has_media_suffix("https://x/A.M3U8", (".m3u8",))


def test_crlf_trailing_blanks_and_final_entry_without_newline():
    text = "#EXTM3U\r\n\r\n#EXTINF:-1,TF1\r\nhttps://x/tf1.m3u8\r\n#EXTINF:-1,M6\r\nhttps://x/m6.m3u8"

    names = [c.name for c in iter_channels(text)]
    assert names == ["TF1", "M6"]

    text_blank_tail = "#EXTINF:-1,TF1\nhttps://x/tf1.m3u8\n\n\n"
    assert [c.name for c in iter_channels(text_blank_tail)] == ["TF1"]


def test_pending_declaration_at_end_of_input_is_dropped():
    text = "#EXTINF:-1,TF1\nhttps://x/tf1.m3u8\n#EXTINF:-1,Dangling\n"

    assert [c.name for c in iter_channels(text)] == ["TF1"]


def test_empty_input_yields_nothing():
    assert list(iter_records("")) == []
    assert list(iter_records("\n\n")) == []


def test_variant_entries_expose_resolution_and_bandwidth():
    text = (
        "#EXTM3U\n"
        '#EXT-X-STREAM-INF:BANDWIDTH=2500000,RESOLUTION=1280x720,CODECS="avc1.4d401f,mp4a.40.2"\n'
        "mid.m3u8\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=96000,CODECS=\"mp4a.40.2\"\n"
        "audio.m3u8\n"
    )

    variants = list(iter_variants(text))

    assert [v.url for v in variants] == ["mid.m3u8", "audio.m3u8"]
    first = variants[0]
    assert isinstance(first, VariantEntry)
    assert first.resolution == (1280, 720)
    assert first.area == 921600
    assert first.bandwidth == 2500000
    assert first.attr("codecs") == "avc1.4d401f,mp4a.40.2"
    assert list(first.attributes) == ["BANDWIDTH", "RESOLUTION", "CODECS"]
    assert variants[1].resolution is None
    assert variants[1].area is None


def test_variant_attribute_with_unterminated_quote_is_absent():
    attrs = parse_variant_attributes('BANDWIDTH=100,RESOLUTION=640x480,CODECS="avc1')

    assert attrs == {"BANDWIDTH": "100", "RESOLUTION": "640x480"}


def test_invalid_resolution_is_unparseable():
    (variant,) = list(
        iter_variants("#EXT-X-STREAM-INF:RESOLUTION=hd,BANDWIDTH=abc\nv.m3u8\n")
    )

    assert variant.resolution is None
    assert variant.bandwidth is None


def test_media_playlist_segments_are_not_variants():
    text = "#EXTM3U\n#EXTINF:6.0,\nseg-1.ts\n#EXTINF:6.0,\nseg-2.ts\n#EXT-X-ENDLIST\n"

    assert list(iter_variants(text)) == []
