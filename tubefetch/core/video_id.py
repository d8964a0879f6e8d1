"""
Video id validation and URL canonicalization.

Accepted URL shapes:
    https://www.youtube.com/watch?v=VIDEO_ID
    https://m.youtube.com/watch?v=VIDEO_ID
    https://music.youtube.com/watch?v=VIDEO_ID
    https://gaming.youtube.com/watch?v=VIDEO_ID
    https://youtu.be/VIDEO_ID
    https://www.youtube.com/v/VIDEO_ID
    https://www.youtube.com/embed/VIDEO_ID
    https://www.youtube.com/shorts/VIDEO_ID
"""

import logging
import re
from urllib.parse import parse_qs, urlparse

from ..exceptions import VideoIdError

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
_URL_RE = re.compile(r"^https?://")

_VALID_QUERY_DOMAINS = frozenset(
    {
        "youtube.com",
        "www.youtube.com",
        "m.youtube.com",
        "music.youtube.com",
        "gaming.youtube.com",
    }
)
_VALID_PATH_DOMAINS = re.compile(
    r"^https?://(youtu\.be/|(www\.)?youtube\.com/(embed|v|shorts)/)", re.IGNORECASE
)


def validate_id(video_id: str) -> bool:
    """Return True if *video_id* has the platform's 11-character id format."""
    return bool(_ID_RE.fullmatch(video_id or ""))


def get_url_video_id(link: str) -> str:
    """Extract and validate the video id from a platform URL."""
    parsed = urlparse(link)
    video_id = parse_qs(parsed.query).get("v", [None])[0]

    if _VALID_PATH_DOMAINS.match(link) and not video_id:
        video_id = parsed.path.rstrip("/").split("/")[-1]
    elif parsed.hostname and parsed.hostname not in _VALID_QUERY_DOMAINS:
        raise VideoIdError("Not a YouTube domain", error_code="video_id.bad_domain")

    if not video_id:
        raise VideoIdError(f"No video id found: {link}", error_code="video_id.not_found")

    video_id = video_id[:11]
    if not validate_id(video_id):
        raise VideoIdError(
            f"Video id ({video_id}) does not match expected format ({_ID_RE.pattern})",
            error_code="video_id.invalid",
        )
    return video_id


def get_video_id(value: str) -> str:
    """Return the video id for a bare id or a supported URL."""
    value = (value or "").strip()
    if validate_id(value):
        return value
    if _URL_RE.match(value):
        return get_url_video_id(value)
    raise VideoIdError(f"No video id found: {value}", error_code="video_id.not_found")


def validate_url(link: str) -> bool:
    """Return True if *link* is a supported URL carrying a valid id."""
    try:
        get_url_video_id(link)
    except VideoIdError:
        return False
    return True
