"""
API route definitions for the tubefetch service.
"""

import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from ..config import get_settings
from ..core.download import download_format, select_download_format
from ..core.formats import choose_format
from ..exceptions import (
    ExtractionError,
    FormatNotFoundError,
    InvalidInputError,
    UnrecoverableError,
)
from ..extractors import YouTubeExtractor
from ..models.enums import FormatFilter
from ..models.request import ByteRange, ChooseRequest, DownloadOptions, InfoRequest
from ..models.response import ErrorResponse, VideoFormat, VideoInfo

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid video id, URL or option"},
    403: {"model": ErrorResponse, "description": "Video cannot be played"},
    502: {"model": ErrorResponse, "description": "Upstream page could not be parsed or fetched"},
}


def _status_for(error: ExtractionError) -> int:
    if isinstance(error, FormatNotFoundError):
        return 404
    if isinstance(error, InvalidInputError):
        return 400
    if isinstance(error, UnrecoverableError):
        return 403
    return 502


def _http_error(error: ExtractionError) -> HTTPException:
    status = _status_for(error)
    if status >= 500:
        logger.warning("Extraction failed: %s", error)
    return HTTPException(
        status_code=status,
        detail={
            "success": False,
            "error": str(error),
            "error_code": error.error_code or "extraction.failed",
        },
    )


def _internal_error(error: Exception) -> HTTPException:
    logger.exception("Unexpected error during extraction: %s", error)
    # Do not leak exception details in production
    message = (
        str(error) if get_settings().debug else "An internal error occurred. Please try again later."
    )
    return HTTPException(
        status_code=500,
        detail={"success": False, "error": message, "error_code": "internal.error"},
    )


@router.post(
    "/info",
    response_model=VideoInfo,
    responses=_ERROR_RESPONSES,
    summary="Resolve a video into deciphered, ranked formats",
)
async def get_info(request: InfoRequest):
    async with YouTubeExtractor() as extractor:
        try:
            return await extractor.get_info(request.url, request)
        except ExtractionError as e:
            raise _http_error(e)
        except Exception as e:
            raise _internal_error(e)


@router.post(
    "/basic-info",
    response_model=VideoInfo,
    responses=_ERROR_RESPONSES,
    summary="Resolve video metadata without deciphering formats",
)
async def get_basic_info(request: InfoRequest):
    async with YouTubeExtractor() as extractor:
        try:
            return await extractor.get_basic_info(request.url, request)
        except ExtractionError as e:
            raise _http_error(e)
        except Exception as e:
            raise _internal_error(e)


@router.post(
    "/choose",
    response_model=VideoFormat,
    responses={**_ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "No such format"}},
    summary="Pick one format by quality policy and filter",
)
async def choose(request: ChooseRequest):
    async with YouTubeExtractor() as extractor:
        try:
            info = await extractor.get_info(request.url, request)
            return choose_format(info.formats, quality=request.quality, filter=request.filter)
        except ExtractionError as e:
            raise _http_error(e)
        except Exception as e:
            raise _internal_error(e)


@router.get(
    "/download",
    responses={**_ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "No such format"}},
    summary="Stream the bytes of the chosen format",
    description=(
        "Resolves the video, picks a format by quality/filter and streams it. "
        "Audio-only and video-only formats are fetched in ranged chunks."
    ),
)
async def download(
    url: str = Query(..., max_length=2048, description="Video URL or bare id"),
    quality: str = Query("highest", description="Policy name or itag"),
    filter: FormatFilter | None = Query(None),
    start: int | None = Query(None, ge=0, description="First byte to send"),
    end: int | None = Query(None, ge=0, description="Last byte to send (inclusive)"),
):
    byte_range = ByteRange(start=start or 0, end=end) if start is not None or end is not None else None
    options = DownloadOptions(quality=quality, filter=filter, range=byte_range)

    extractor = YouTubeExtractor()
    try:
        info = await extractor.get_info(url, options)
        fmt = select_download_format(info, options)
    except ExtractionError as e:
        await extractor.close()
        raise _http_error(e)
    except Exception as e:
        await extractor.close()
        raise _internal_error(e)

    async def body():
        try:
            async for data in download_format(extractor.http, fmt, options):
                yield data
        finally:
            await extractor.close()

    media_type = (fmt.mime_type or "application/octet-stream").split(";")[0]
    logger.info("Streaming itag %s for %s", fmt.itag, info.video_id)
    return StreamingResponse(
        body(),
        media_type=media_type,
        headers={"Cache-Control": "no-store", "X-Itag": str(fmt.itag)},
    )


@router.get(
    "/health",
    summary="Health check",
)
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "debug": settings.debug,
        "player_cache_ttl": settings.player_cache_ttl,
    }
