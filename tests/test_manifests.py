"""Tests for DASH and HLS manifest parsing."""

from pathlib import Path

import pytest
import respx

from tubefetch.core.dash_parser import DashManifestParser, fetch_dash_formats, parse_mpd
from tubefetch.core.formats import add_format_meta
from tubefetch.core.http_client import HTTPClient
from tubefetch.core.m3u8_parser import fetch_hls_formats, parse_m3u8
from tubefetch.exceptions import ExtractionError

DASH_URL = "https://manifest.googlevideo.com/api/manifest/dash/id/abc/source/youtube"
HLS_URL = "https://manifest.googlevideo.com/api/manifest/hls_variant/id/abc/file/index.m3u8"

DATA_DIR = Path(__file__).parent / "data"


def read_fixture(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


class TestDash:
    def test_representations(self):
        formats = parse_mpd((DATA_DIR / "manifest.mpd").read_bytes(), DASH_URL)
        by_itag = {f.itag: f for f in formats}
        assert set(by_itag) == {140, 137}

        audio = by_itag[140]
        assert audio.url == DASH_URL
        assert audio.mime_type == 'audio/mp4; codecs="mp4a.40.2"'
        assert audio.audio_sample_rate == 44100
        assert audio.bitrate == 130000
        assert audio.height is None

        video = by_itag[137]
        assert video.mime_type == 'video/mp4; codecs="avc1.640028"'
        assert (video.width, video.height, video.fps) == (1920, 1080, 30)
        assert video.audio_sample_rate is None

    def test_incremental_feed(self):
        content = (DATA_DIR / "manifest.mpd").read_bytes()
        parser = DashManifestParser(DASH_URL)
        for i in range(0, len(content), 37):
            parser.feed(content[i : i + 37])
        assert {f.itag for f in parser.close()} == {140, 137}

    def test_normalized_as_dash(self):
        formats = parse_mpd((DATA_DIR / "manifest.mpd").read_bytes(), DASH_URL)
        fmt = add_format_meta(next(f for f in formats if f.itag == 137))
        assert fmt.is_dash_mpd
        assert fmt.has_video
        assert fmt.quality_label == "1080p"

    def test_malformed(self):
        with pytest.raises(ExtractionError) as exc:
            parse_mpd(b"<MPD><Period></MPD>", DASH_URL)
        assert exc.value.error_code == "dash.parse"

    @respx.mock
    async def test_fetch_streams_manifest(self):
        respx.get(DASH_URL).respond(200, content=(DATA_DIR / "manifest.mpd").read_bytes())
        async with HTTPClient(max_retries=0) as http:
            formats = await fetch_dash_formats(http, DASH_URL)
        assert set(formats) == {(140, DASH_URL), (137, DASH_URL)}


class TestHls:
    def test_variants(self):
        formats = parse_m3u8(read_fixture("playlist.m3u8"))
        assert [f.itag for f in formats] == [91, 93]
        assert all(f.url.startswith("https://manifest.googlevideo.com/") for f in formats)

    def test_normalized_as_hls(self):
        fmt = add_format_meta(parse_m3u8(read_fixture("playlist.m3u8"))[0])
        assert fmt.is_hls
        assert fmt.is_live
        assert fmt.has_video and fmt.has_audio

    def test_ignores_non_url_lines(self):
        assert parse_m3u8("#EXTM3U\n/relative/itag/18/index.m3u8\n\n") == []

    @respx.mock
    async def test_fetch(self):
        respx.get(HLS_URL).respond(200, text=read_fixture("playlist.m3u8"))
        async with HTTPClient(max_retries=0) as http:
            formats = await fetch_hls_formats(http, HLS_URL)
        assert sorted(itag for itag, _ in formats) == [91, 93]
