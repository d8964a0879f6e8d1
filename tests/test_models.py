"""Tests for Pydantic models and enum definitions."""

import pytest
from pydantic import ValidationError

from tubefetch.models.enums import FormatFilter, PlayabilityStatus, QualityPolicy
from tubefetch.models.request import ChooseRequest, GetInfoOptions, InfoRequest
from tubefetch.models.response import ErrorResponse, VideoDetails, VideoFormat, VideoInfo


# ── Enum completeness ────────────────────────────────────────────────
class TestEnums:
    def test_quality_policies(self):
        expected = {"highest", "lowest", "highestaudio", "lowestaudio", "highestvideo", "lowestvideo"}
        assert {q.value for q in QualityPolicy} == expected

    def test_filters(self):
        expected = {"video", "videoonly", "audio", "audioonly", "videoandaudio", "audioandvideo"}
        assert {f.value for f in FormatFilter} == expected

    def test_playability_statuses(self):
        assert PlayabilityStatus("LIVE_STREAM_OFFLINE") is PlayabilityStatus.LIVE_STREAM_OFFLINE


# ── VideoFormat ──────────────────────────────────────────────────────
class TestVideoFormat:
    def test_accepts_platform_keys(self):
        f = VideoFormat.model_validate(
            {
                "itag": 251,
                "mimeType": 'audio/webm; codecs="opus"',
                "audioBitrate": 160,
                "contentLength": "3000",
                "signatureCipher": "s=abc&url=x",
            }
        )
        assert f.mime_type == 'audio/webm; codecs="opus"'
        assert f.content_length == 3000
        assert f.signature_cipher == "s=abc&url=x"
        assert f.url is None

    def test_unknown_keys_kept(self):
        f = VideoFormat.model_validate({"itag": 18, "projectionType": "RECTANGULAR"})
        assert f.model_extra == {"projectionType": "RECTANGULAR"}

    def test_serializes_camel_case(self):
        dumped = VideoFormat(itag=18, has_audio=True, is_hls=True).model_dump(by_alias=True)
        assert dumped["hasAudio"] is True
        assert dumped["isHLS"] is True
        assert dumped["isDashMPD"] is False

    def test_itag_required(self):
        with pytest.raises(ValidationError):
            VideoFormat()


# ── VideoInfo / VideoDetails ─────────────────────────────────────────
class TestVideoInfo:
    def test_minimal(self):
        info = VideoInfo(video_id="dQw4w9WgXcQ")
        assert info.formats == []
        assert info.related_videos == []
        assert info.html5player is None
        assert info.full is False

    def test_player_response_not_serialized(self):
        info = VideoInfo(video_id="dQw4w9WgXcQ", player_response={"x": 1})
        assert "player_response" not in info.model_dump()
        assert info.player_response == {"x": 1}

    def test_details_coerce_numbers(self):
        details = VideoDetails.model_validate({"lengthSeconds": "212", "viewCount": "1000"})
        assert details.length_seconds == 212
        assert details.view_count == 1000
        assert details.age_restricted is False


# ── Request models ───────────────────────────────────────────────────
class TestRequests:
    def test_info_options_bounds(self):
        with pytest.raises(ValidationError):
            GetInfoOptions(max_retries=11)
        with pytest.raises(ValidationError):
            GetInfoOptions(backoff_inc=-1)

    def test_info_options_defaults(self):
        options = GetInfoOptions()
        assert options.lang == "en"
        assert options.max_retries == 2
        assert options.headers == {}

    def test_info_request_url_limit(self):
        assert InfoRequest(url="dQw4w9WgXcQ").url == "dQw4w9WgXcQ"
        with pytest.raises(ValidationError):
            InfoRequest(url="https://youtu.be/" + "x" * 2048)

    def test_choose_request(self):
        req = ChooseRequest(url="dQw4w9WgXcQ", quality=[22, "18"], filter="audioonly")
        assert req.quality == [22, "18"]
        assert req.filter == FormatFilter.AUDIO_ONLY

    def test_invalid_filter_rejected(self):
        with pytest.raises(ValidationError, match="Input should be"):
            ChooseRequest(url="dQw4w9WgXcQ", filter="subtitles")


# ── ErrorResponse ────────────────────────────────────────────────────
class TestErrorResponse:
    def test_defaults(self):
        r = ErrorResponse(error="nope")
        assert r.success is False
        assert r.error_code is None
