"""
Video metadata extractors.

The YouTube extractor walks an ordered list of endpoints (HTML watch page,
JSON watch page, legacy ``get_video_info``) until one yields a playable
record, then deciphers and ranks its formats.
"""

from .youtube import (
    ExtractorCaches,
    YouTubeExtractor,
    download,
    get_basic_info,
    get_default_caches,
    get_info,
)

__all__ = [
    "ExtractorCaches",
    "YouTubeExtractor",
    "download",
    "get_basic_info",
    "get_default_caches",
    "get_info",
]
