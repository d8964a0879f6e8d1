"""
Byte streaming for a resolved format.

Audio-only and video-only formats are fetched in ranged chunks (the
platform throttles long single responses for those); muxed formats use a
single request. Either way a mid-stream network failure resumes from the
last delivered byte, up to ``max_reconnects`` times.
"""

import logging
from collections.abc import AsyncIterator

from ..config import get_settings
from ..exceptions import InvalidInputError, TransportError, UnrecoverableError
from ..models.enums import PlayabilityStatus
from ..models.request import DownloadOptions
from ..models.response import VideoFormat, VideoInfo
from ..utils.helpers import get_random_ipv6, parse_timestamp, traverse_obj
from .formats import choose_format
from .http_client import HTTPClient

logger = logging.getLogger(__name__)

_UNPLAYABLE = {
    PlayabilityStatus.UNPLAYABLE.value,
    PlayabilityStatus.LIVE_STREAM_OFFLINE.value,
    PlayabilityStatus.LOGIN_REQUIRED.value,
}


def check_playable(info: VideoInfo) -> None:
    """Raise UnrecoverableError if the player response forbids playback."""
    playability = traverse_obj(info.player_response, "playabilityStatus", default={})
    if playability.get("status") in _UNPLAYABLE:
        reason = playability.get("reason") or traverse_obj(playability, ("messages", 0))
        raise UnrecoverableError(
            reason or f"Video is {playability['status']}", error_code="youtube.unplayable"
        )


def select_download_format(info: VideoInfo, options: DownloadOptions) -> VideoFormat:
    """Check playability and pick the format *options* asks for."""
    check_playable(info)
    if not info.formats:
        raise UnrecoverableError("This video is unavailable", error_code="youtube.unavailable")
    return choose_format(info.formats, quality=options.quality, filter=options.filter)


def _begin_url(url: str, begin: str) -> str:
    seconds = parse_timestamp(begin)
    if seconds is None:
        raise InvalidInputError(f"Invalid begin value: {begin}", error_code="download.bad_begin")
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}begin={seconds * 1000}"


async def download_format(
    http: HTTPClient,
    fmt: VideoFormat,
    options: DownloadOptions | None = None,
) -> AsyncIterator[bytes]:
    """
    Yield the bytes of *fmt*.

    Chunked mode requests ``bytes=start-(start+dl_chunk_size-1)`` windows
    until the range end or the content length is reached.
    """
    options = options or DownloadOptions()
    settings = get_settings()
    if fmt.is_hls or fmt.is_dash_mpd:
        raise InvalidInputError(
            "Manifest formats cannot be downloaded as a single stream",
            error_code="download.manifest_format",
        )
    if not fmt.url:
        raise InvalidInputError("Format has no URL", error_code="format.unresolved")

    url = fmt.url
    start = options.range.start if options.range else 0
    range_end = options.range.end if options.range else None
    chunked = options.dl_chunk_size > 0 and not (fmt.has_audio and fmt.has_video)

    if range_end is not None:
        last_byte = range_end
    elif fmt.content_length:
        last_byte = fmt.content_length - 1
    else:
        last_byte = None

    if not chunked and options.begin:
        url = _begin_url(url, options.begin)
    send_range = chunked or bool(options.range and (options.range.start or options.range.end))

    if last_byte is not None:
        logger.debug("Downloading itag %s: %d bytes", fmt.itag, last_byte + 1 - start)

    pos = start
    reconnects = 0
    while last_byte is None or pos <= last_byte:
        if chunked and last_byte is not None:
            window_end = min(pos + options.dl_chunk_size - 1, last_byte)
        else:
            window_end = last_byte if send_range else None
        headers = dict(options.headers)
        if send_range or pos != start:
            headers["Range"] = f"bytes={pos}-{'' if window_end is None else window_end}"

        received = 0
        try:
            async with http.stream(url, headers=headers) as response:
                async for data in response.aiter_bytes():
                    received += len(data)
                    pos += len(data)
                    yield data
        except TransportError as e:
            if not e.retryable or reconnects >= settings.max_reconnects:
                raise
            reconnects += 1
            logger.warning(
                "Stream for itag %s broke at byte %d (%s), reconnect %d/%d",
                fmt.itag,
                pos,
                e,
                reconnects,
                settings.max_reconnects,
            )
            continue

        if window_end is None or received == 0:
            break


async def download_from_info(
    info: VideoInfo,
    options: DownloadOptions | None = None,
    http: HTTPClient | None = None,
) -> AsyncIterator[bytes]:
    """Pick a format from *info* per *options* and yield its bytes."""
    options = options or DownloadOptions()
    fmt = select_download_format(info, options)

    owned = http is None or options.ipv6_block is not None
    if owned:
        local_address = get_random_ipv6(options.ipv6_block) if options.ipv6_block else None
        http = HTTPClient(headers=options.headers, local_address=local_address)
    try:
        async for data in download_format(http, fmt, options):
            yield data
    finally:
        if owned:
            await http.close()
