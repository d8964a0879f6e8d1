"""
HLS (M3U8) variant playlist parser.

Each line that is itself an absolute URL is one variant; its itag sits in
an ``/itag/<n>/`` path segment.
"""

import logging
import re

from ..models.response import VideoFormat
from ..utils.helpers import absolute_url
from .http_client import HTTPClient

logger = logging.getLogger(__name__)

_URL_LINE_RE = re.compile(r"^https?://")
_ITAG_RE = re.compile(r"/itag/(\d+)/")


def parse_m3u8(content: str) -> list[VideoFormat]:
    """Return one format per variant URL line in *content*."""
    formats = []
    for line in content.splitlines():
        line = line.strip()
        if not _URL_LINE_RE.match(line):
            continue
        match = _ITAG_RE.search(line)
        if not match:
            logger.debug("Skipping HLS line without itag: %s", line)
            continue
        formats.append(VideoFormat(itag=int(match.group(1)), url=line))
    return formats


async def fetch_hls_formats(http: HTTPClient, url: str) -> dict[tuple[int, str], VideoFormat]:
    body = await http.get_text(absolute_url(url), retries=0)
    formats = parse_m3u8(body)
    logger.debug("HLS playlist yielded %d formats", len(formats))
    return {(f.itag, f.url): f for f in formats}
