"""Tests for video id validation and URL canonicalization."""

import pytest

from tubefetch.core.video_id import get_url_video_id, get_video_id, validate_id, validate_url
from tubefetch.exceptions import InvalidInputError, VideoIdError

VIDEO_ID = "dQw4w9WgXcQ"


# ── Accepted URL shapes ──────────────────────────────────────────────
class TestURLShapes:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?v=dQw4w9WgXcQ",
            "http://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PLxyz",
            "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://music.youtube.com/watch?v=dQw4w9WgXcQ&feature=share",
            "https://gaming.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ?t=42",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/v/dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://youtube.com/shorts/dQw4w9WgXcQ/",
        ],
    )
    def test_id_extracted(self, url):
        assert get_url_video_id(url) == VIDEO_ID
        assert get_video_id(url) == VIDEO_ID
        assert validate_url(url)

    def test_id_truncated_to_eleven_chars(self):
        assert get_url_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQXYZ") == VIDEO_ID


class TestRejected:
    def test_foreign_domain(self):
        with pytest.raises(VideoIdError) as exc:
            get_url_video_id("https://example.com/watch?v=dQw4w9WgXcQ")
        assert exc.value.error_code == "video_id.bad_domain"

    def test_no_id(self):
        with pytest.raises(VideoIdError) as exc:
            get_url_video_id("https://www.youtube.com/feed/trending")
        assert exc.value.error_code == "video_id.not_found"

    def test_invalid_id_format(self):
        with pytest.raises(VideoIdError) as exc:
            get_url_video_id("https://www.youtube.com/watch?v=short")
        assert exc.value.error_code == "video_id.invalid"

    @pytest.mark.parametrize("value", ["", "not an id", "dQw4w9WgXc", "ftp://youtu.be/x"])
    def test_get_video_id_fails(self, value):
        with pytest.raises(VideoIdError):
            get_video_id(value)

    def test_is_an_input_error(self):
        assert issubclass(VideoIdError, InvalidInputError)

    def test_validate_url_false(self):
        assert not validate_url("https://vimeo.com/123456")


class TestValidateId:
    @pytest.mark.parametrize("video_id", [VIDEO_ID, "___________", "-a-b-c-d-e-", "A1b2C3d4E5f"])
    def test_valid_ids_are_identity(self, video_id):
        assert validate_id(video_id)
        assert get_video_id(video_id) == video_id

    def test_surrounding_whitespace(self):
        assert get_video_id(f"  {VIDEO_ID}\n") == VIDEO_ID

    @pytest.mark.parametrize("video_id", ["", "dQw4w9WgXc", "dQw4w9WgXcQQ", "dQw4w9WgX!Q"])
    def test_invalid_ids(self, video_id):
        assert not validate_id(video_id)
