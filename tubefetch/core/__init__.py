"""Core utilities: HTTP, caching, cipher replay, format ranking and manifest parsing."""

from .cache import TTLCache
from .cipher import apply_tokens, extract_tokens
from .formats import add_format_meta, choose_format, filter_formats, sort_formats
from .http_client import HTTPClient
from .video_id import get_url_video_id, get_video_id, validate_id, validate_url

__all__ = [
    "HTTPClient",
    "TTLCache",
    "add_format_meta",
    "apply_tokens",
    "choose_format",
    "extract_tokens",
    "filter_formats",
    "get_url_video_id",
    "get_video_id",
    "sort_formats",
    "validate_id",
    "validate_url",
]
