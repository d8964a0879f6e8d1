"""tubefetch: resolve YouTube videos into playable, ranked formats."""

from .core.download import download_from_info
from .core.formats import choose_format, filter_formats
from .core.video_id import get_url_video_id, get_video_id, validate_id, validate_url
from .extractors import download, get_basic_info, get_info

__all__ = [
    "choose_format",
    "download",
    "download_from_info",
    "filter_formats",
    "get_basic_info",
    "get_info",
    "get_url_video_id",
    "get_video_id",
    "validate_id",
    "validate_url",
]
