"""
YouTube metadata pipeline.

Resolution walks three endpoints in a fixed order (HTML watch page, JSON
watch page, legacy get_video_info), each with its own linear-back-off
retries. Records are merged "first non-null wins" and the loop stops as
soon as the merged record validates. ``get_info`` then resolves every
format's URL against the player script and folds in DASH/HLS manifest
formats.

Error policy per endpoint attempt:
- UnrecoverableError, InvalidInputError, 4xx TransportError: abort.
- 5xx/429/network TransportError: retry, then fall back.
- Any other ExtractionError: fall back immediately.
- On the last endpoint every failure is surfaced.
"""

import asyncio
import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ..config import get_settings
from ..core.cache import TTLCache
from ..core.dash_parser import fetch_dash_formats
from ..core.download import download_from_info
from ..core.formats import add_format_meta, sort_formats
from ..core.http_client import HTTPClient
from ..core.m3u8_parser import fetch_hls_formats
from ..core.signature import decipher_formats
from ..core.video_id import get_video_id
from ..exceptions import (
    ExtractionError,
    InvalidInputError,
    NoFormatsError,
    TransportError,
    UnrecoverableError,
)
from ..models.enums import PlayabilityStatus
from ..models.request import DownloadOptions, GetInfoOptions
from ..models.response import VideoFormat, VideoInfo
from ..utils.helpers import BASE_URL, absolute_url, traverse_obj
from . import extras
from .base import BaseEndpoint, get_html5player, watch_html_url
from .video_info import VideoInfoEndpoint
from .watch_json import WatchJSONEndpoint
from .watch_page import WatchHTMLEndpoint

logger = logging.getLogger(__name__)

EMBED_URL = "https://www.youtube.com/embed/"

AGE_RESTRICTED_URLS = (
    "support.google.com/youtube/?p=age_restrictions",
    "youtube.com/t/community_guidelines",
)

_ID_TOKEN_RE = re.compile(r'(["\'])ID_TOKEN\1[:,]\s?"([^"]+)"')

# Keys merged field by field instead of as a whole
_NESTED_KEYS = frozenset({"player_response", "videoDetails"})


@dataclass
class ExtractorCaches:
    """TTL caches shared by every extractor built on top of them."""

    player_scripts: TTLCache = field(
        default_factory=lambda: TTLCache(get_settings().player_cache_ttl)
    )
    watch_pages: TTLCache = field(
        default_factory=lambda: TTLCache(get_settings().watch_page_cache_ttl)
    )
    identity_tokens: TTLCache = field(
        default_factory=lambda: TTLCache(get_settings().identity_token_cache_ttl)
    )

    def clear(self) -> None:
        self.player_scripts.clear()
        self.watch_pages.clear()
        self.identity_tokens.clear()


_default_caches: ExtractorCaches | None = None


def get_default_caches() -> ExtractorCaches:
    global _default_caches
    if _default_caches is None:
        _default_caches = ExtractorCaches()
    return _default_caches


class Transition(Enum):
    """What the pipeline does after one endpoint attempt."""

    DONE = "done"
    NEXT = "next"
    ABORT = "abort"


@dataclass
class PipelineState:
    info: dict[str, Any] | None = None
    error: Exception | None = None
    endpoint: str | None = None


def merge_records(target: dict | None, source: dict | None) -> dict:
    """
    Merge *source* into a copy of *target*. A key already holding a
    non-null value keeps it; *source* only fills gaps. The player response
    and its videoDetails are merged key by key.
    """
    if not target or not source:
        return dict(target or source or {})
    merged = dict(target)
    for key, value in source.items():
        if value is None:
            continue
        current = merged.get(key)
        if current is None:
            merged[key] = value
        elif key in _NESTED_KEYS and isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_records(current, value)
    return merged


def _playability(player_response: Any) -> dict:
    if not isinstance(player_response, dict):
        return {}
    return player_response.get("playabilityStatus") or {}


def _play_error_message(playability: dict) -> str:
    return playability.get("reason") or traverse_obj(playability, ("messages", 0)) or ""


def private_video_error(player_response: Any) -> UnrecoverableError | None:
    playability = _playability(player_response)
    messages = playability.get("messages") or []
    if playability.get("status") == PlayabilityStatus.LOGIN_REQUIRED.value and any(
        "This is a private video" in str(m) for m in messages
    ):
        return UnrecoverableError(
            _play_error_message(playability), error_code="youtube.private"
        )
    return None


def is_rental(player_response: Any) -> bool:
    playability = _playability(player_response)
    return bool(
        playability.get("status") == PlayabilityStatus.UNPLAYABLE.value
        and traverse_obj(playability, ("errorScreen", "playerLegacyDesktopYpcOfferRenderer"))
    )


def is_not_yet_broadcasted(player_response: Any) -> bool:
    return _playability(player_response).get("status") == PlayabilityStatus.LIVE_STREAM_OFFLINE.value


def validate_record(info: dict) -> bool:
    """
    True once *info* holds usable playback data. An ERROR status or a
    private video raises UnrecoverableError.
    """
    player_response = info.get("player_response")
    playability = _playability(player_response)
    if playability.get("status") == PlayabilityStatus.ERROR.value:
        raise UnrecoverableError(
            _play_error_message(playability) or "Video unavailable",
            error_code="youtube.unplayable",
        )
    private_error = private_video_error(player_response)
    if private_error:
        raise private_error
    return bool(
        isinstance(player_response, dict)
        and (
            player_response.get("streamingData")
            or is_rental(player_response)
            or is_not_yet_broadcasted(player_response)
        )
    )


def parse_formats(player_response: dict) -> list[VideoFormat]:
    """Progressive plus adaptive formats from the streaming data."""
    streaming = (player_response or {}).get("streamingData") or {}
    formats = []
    for raw in (streaming.get("formats") or []) + (streaming.get("adaptiveFormats") or []):
        try:
            formats.append(VideoFormat.model_validate(raw))
        except ValidationError as e:
            logger.debug("Dropping malformed format: %s", e)
    return formats


class YouTubeExtractor:
    """
    Resolves video ids into VideoInfo records.

    Owns an HTTPClient (unless one is given) and uses a set of TTL caches
    that may be shared between extractors.
    """

    def __init__(
        self,
        http: HTTPClient | None = None,
        caches: ExtractorCaches | None = None,
    ):
        self._http = http
        self._owns_http = http is None
        self.caches = caches if caches is not None else get_default_caches()
        self.endpoints: list[BaseEndpoint] = [
            WatchHTMLEndpoint(self),
            WatchJSONEndpoint(self),
            VideoInfoEndpoint(self),
        ]

    @property
    def http(self) -> HTTPClient:
        """Lazy-initialized HTTP client."""
        if self._http is None:
            self._http = HTTPClient()
        return self._http

    async def close(self):
        if self._http and self._owns_http:
            await self._http.close()
            self._http = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    # ------------------------------------------------------------------
    # Page bodies and tokens
    # ------------------------------------------------------------------

    async def get_watch_page_body(self, video_id: str, options: GetInfoOptions) -> str:
        url = watch_html_url(video_id, options)
        return await self.caches.watch_pages.get_or_set(
            url, lambda: self.http.get_text(url, headers=options.headers, retries=0)
        )

    async def get_embed_page_body(self, video_id: str, options: GetInfoOptions) -> str:
        url = f"{EMBED_URL}{video_id}?hl={options.lang or 'en'}"
        return await self.http.get_text(url, headers=options.headers, retries=0)

    async def get_identity_token(
        self, video_id: str, options: GetInfoOptions, key: str, required: bool
    ) -> str | None:
        """Identity token scraped from the watch page, cached per cookie value."""

        async def scrape() -> str | None:
            page = await self.get_watch_page_body(video_id, options)
            match = _ID_TOKEN_RE.search(page)
            if not match and required:
                raise UnrecoverableError(
                    "Cookie header used in request, but unable to find YouTube identity token",
                    error_code="youtube.identity_token",
                )
            return match.group(2) if match else None

        return await self.caches.identity_tokens.get_or_set(key, scrape)

    async def find_player_url(self, video_id: str, options: GetInfoOptions) -> str | None:
        """
        Player script URL from the watch page, else from the embed page.

        A page that fails to load counts as a miss; None is left for
        decipher_formats to judge.
        """
        for page_name, fetch_page in (
            ("watch", self.get_watch_page_body),
            ("embed", self.get_embed_page_body),
        ):
            try:
                player_url = get_html5player(await fetch_page(video_id, options))
            except ExtractionError as e:
                logger.warning("Could not load %s page for %s: %s", page_name, video_id, e)
                continue
            if player_url:
                return player_url
            logger.debug("No player script on %s page for %s", page_name, video_id)
        return None

    # ------------------------------------------------------------------
    # Endpoint pipeline
    # ------------------------------------------------------------------

    async def _fetch_with_retries(
        self, endpoint: BaseEndpoint, video_id: str, options: GetInfoOptions
    ) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                return await endpoint.fetch(video_id, options)
            except TransportError as e:
                if not e.retryable or attempt >= options.max_retries:
                    raise
                attempt += 1
                wait = min(attempt * options.backoff_inc, options.backoff_max)
                logger.warning(
                    "%s failed for %s (attempt %d/%d): %s. Retrying in %.1fs...",
                    endpoint.name,
                    video_id,
                    attempt,
                    options.max_retries + 1,
                    e,
                    wait,
                )
                await asyncio.sleep(wait)

    async def _step(
        self,
        state: PipelineState,
        endpoint: BaseEndpoint,
        video_id: str,
        options: GetInfoOptions,
        is_last: bool,
    ) -> Transition:
        state.endpoint = endpoint.name
        try:
            record = await self._fetch_with_retries(endpoint, video_id, options)
        except (UnrecoverableError, InvalidInputError) as e:
            state.error = e
            return Transition.ABORT
        except TransportError as e:
            state.error = e
            if not e.retryable or is_last:
                return Transition.ABORT
            logger.warning("%s exhausted for %s: %s", endpoint.name, video_id, e)
            return Transition.NEXT
        except ExtractionError as e:
            if is_last:
                state.error = ExtractionError(
                    f"Unable to retrieve video metadata: {e}", error_code="metadata.unavailable"
                )
                state.error.__cause__ = e
                return Transition.ABORT
            logger.warning("%s gave no metadata for %s: %s", endpoint.name, video_id, e)
            return Transition.NEXT

        state.info = merge_records(state.info, record)
        if validate_record(state.info):
            logger.debug("Metadata for %s validated after %s", video_id, endpoint.name)
            return Transition.DONE
        return Transition.NEXT

    async def run_pipeline(self, video_id: str, options: GetInfoOptions) -> dict[str, Any]:
        """Walk the endpoints until the merged record validates."""
        state = PipelineState()
        for index, endpoint in enumerate(self.endpoints):
            transition = await self._step(
                state, endpoint, video_id, options, is_last=index == len(self.endpoints) - 1
            )
            if transition is Transition.DONE:
                return state.info
            if transition is Transition.ABORT:
                raise state.error

        reason = _play_error_message(_playability((state.info or {}).get("player_response")))
        if reason:
            raise UnrecoverableError(reason, error_code="youtube.unplayable")
        raise ExtractionError(
            "Unable to retrieve video metadata", error_code="metadata.unavailable"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_basic_info(
        self, id_or_url: str, options: GetInfoOptions | None = None
    ) -> VideoInfo:
        """Metadata and raw formats, without deciphering."""
        video_id = get_video_id(id_or_url)
        options = options or GetInfoOptions()
        info = await self.run_pipeline(video_id, options)
        player_response = info.get("player_response") or {}

        media = extras.get_media(info)
        notice_url = media.get("notice_url") or ""
        additional = {
            "author": extras.get_author(info),
            "media": media,
            "likes": extras.get_likes(info),
            "dislikes": extras.get_dislikes(info),
            "age_restricted": any(url in notice_url for url in AGE_RESTRICTED_URLS),
            "video_url": BASE_URL + video_id,
            "storyboards": extras.get_storyboards(info),
        }
        details = extras.clean_video_details(
            {
                **(
                    traverse_obj(player_response, ("microformat", "playerMicroformatRenderer"))
                    or {}
                ),
                **(player_response.get("videoDetails") or {}),
                **additional,
            },
            info,
        )

        return VideoInfo(
            video_id=video_id,
            formats=parse_formats(player_response),
            video_details=extras.build_video_details(details),
            related_videos=extras.get_related_videos(info),
            html5player=info.get("html5player"),
            player_response=player_response,
        )

    async def get_info(self, id_or_url: str, options: GetInfoOptions | None = None) -> VideoInfo:
        """Metadata plus deciphered, manifest-expanded and ranked formats."""
        options = options or GetInfoOptions()
        info = await self.get_basic_info(id_or_url, options)
        streaming = info.player_response.get("streamingData") or {}
        dash_url = streaming.get("dashManifestUrl")
        hls_url = streaming.get("hlsManifestUrl")

        tasks = []
        player_url = info.html5player
        if info.formats:
            player_url = player_url or await self.find_player_url(info.video_id, options)
            if player_url:
                player_url = absolute_url(player_url)
            tasks.append(
                decipher_formats(
                    self.http, info.formats, player_url, self.caches.player_scripts
                )
            )
        if dash_url:
            tasks.append(fetch_dash_formats(self.http, dash_url))
        if hls_url:
            tasks.append(fetch_hls_formats(self.http, hls_url))

        merged: dict[tuple[int, str], VideoFormat] = {}
        for result in await asyncio.gather(*tasks):
            merged.update(result)

        formats = sort_formats(add_format_meta(f) for f in merged.values())
        if tasks and not formats:
            raise NoFormatsError("No formats found", error_code="formats.none")
        logger.info("Resolved %d formats for %s", len(formats), info.video_id)
        return info.model_copy(update={"formats": formats, "html5player": player_url, "full": True})


# ----------------------------------------------------------------------
# Module-level convenience functions
# ----------------------------------------------------------------------


async def get_basic_info(id_or_url: str, options: GetInfoOptions | None = None) -> VideoInfo:
    async with YouTubeExtractor() as extractor:
        return await extractor.get_basic_info(id_or_url, options)


async def get_info(id_or_url: str, options: GetInfoOptions | None = None) -> VideoInfo:
    async with YouTubeExtractor() as extractor:
        return await extractor.get_info(id_or_url, options)


async def download(id_or_url: str, options: DownloadOptions | None = None) -> AsyncIterator[bytes]:
    """Resolve *id_or_url* and yield the bytes of the format *options* selects."""
    options = options or DownloadOptions()
    async with YouTubeExtractor() as extractor:
        info = await extractor.get_info(id_or_url, options)
        async for data in download_from_info(info, options, extractor.http):
            yield data
