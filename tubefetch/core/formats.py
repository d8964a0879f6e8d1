"""
Format normalization, ranking and selection.

``add_format_meta`` fills a format's gaps from the known-itag table and
derives capability flags; ``sort_formats`` ranks the normalized list best
first; ``choose_format`` and ``filter_formats`` apply a caller's policy.
"""

import logging
import re
from collections.abc import Callable, Iterable

from ..exceptions import FormatNotFoundError, InvalidInputError
from ..models.enums import FormatFilter, QualityPolicy
from ..models.response import VideoFormat
from ..utils.helpers import leading_int
from .text import between

logger = logging.getLogger(__name__)

FormatPredicate = Callable[[VideoFormat], bool]


def _itag(mime_type: str, quality_label: str | None, bitrate: int | None, audio_bitrate: int | None):
    return {
        "mime_type": mime_type,
        "quality_label": quality_label,
        "bitrate": bitrate,
        "audio_bitrate": audio_bitrate,
    }


# Known itags. Values act as defaults: a format's own fields always win.
ITAGS: dict[int, dict] = {
    5: _itag('video/flv; codecs="Sorenson H.283, mp3"', "240p", 250000, 64),
    6: _itag('video/flv; codecs="Sorenson H.263, mp3"', "270p", 800000, 64),
    13: _itag('video/3gp; codecs="MPEG-4 Visual, aac"', None, 500000, None),
    17: _itag('video/3gp; codecs="MPEG-4 Visual, aac"', "144p", 50000, 24),
    18: _itag('video/mp4; codecs="H.264, aac"', "360p", 500000, 96),
    22: _itag('video/mp4; codecs="H.264, aac"', "720p", 2000000, 192),
    34: _itag('video/flv; codecs="H.264, aac"', "360p", 500000, 128),
    35: _itag('video/flv; codecs="H.264, aac"', "480p", 800000, 128),
    36: _itag('video/3gp; codecs="MPEG-4 Visual, aac"', "240p", 175000, 32),
    37: _itag('video/mp4; codecs="H.264, aac"', "1080p", 3000000, 192),
    38: _itag('video/mp4; codecs="H.264, aac"', "3072p", 3500000, 192),
    43: _itag('video/webm; codecs="VP8, vorbis"', "360p", 500000, 128),
    44: _itag('video/webm; codecs="VP8, vorbis"', "480p", 1000000, 128),
    45: _itag('video/webm; codecs="VP8, vorbis"', "720p", 2000000, 192),
    46: _itag('video/webm; codecs="VP8, vorbis"', "1080p", None, 192),
    82: _itag('video/mp4; codecs="H.264, aac"', "360p", 500000, 96),
    83: _itag('video/mp4; codecs="H.264, aac"', "240p", 500000, 96),
    84: _itag('video/mp4; codecs="H.264, aac"', "720p", 2000000, 192),
    85: _itag('video/mp4; codecs="H.264, aac"', "1080p", 3000000, 192),
    91: _itag('video/ts; codecs="H.264, aac"', "144p", 100000, 48),
    92: _itag('video/ts; codecs="H.264, aac"', "240p", 150000, 48),
    93: _itag('video/ts; codecs="H.264, aac"', "360p", 500000, 128),
    94: _itag('video/ts; codecs="H.264, aac"', "480p", 800000, 128),
    95: _itag('video/ts; codecs="H.264, aac"', "720p", 1500000, 256),
    96: _itag('video/ts; codecs="H.264, aac"', "1080p", 2500000, 256),
    100: _itag('video/webm; codecs="VP8, vorbis"', "360p", None, 128),
    101: _itag('video/webm; codecs="VP8, vorbis"', "360p", None, 192),
    102: _itag('video/webm; codecs="VP8, vorbis"', "720p", None, 192),
    120: _itag('video/flv; codecs="H.264, aac"', "720p", 2000000, 128),
    127: _itag('audio/ts; codecs="aac"', None, None, 96),
    128: _itag('audio/ts; codecs="aac"', None, None, 96),
    132: _itag('video/ts; codecs="H.264, aac"', "240p", 150000, 48),
    133: _itag('video/mp4; codecs="H.264"', "240p", 200000, None),
    134: _itag('video/mp4; codecs="H.264"', "360p", 300000, None),
    135: _itag('video/mp4; codecs="H.264"', "480p", 500000, None),
    136: _itag('video/mp4; codecs="H.264"', "720p", 1000000, None),
    137: _itag('video/mp4; codecs="H.264"', "1080p", 2500000, None),
    138: _itag('video/mp4; codecs="H.264"', "4320p", 13500000, None),
    139: _itag('audio/mp4; codecs="aac"', None, None, 48),
    140: _itag('audio/mp4; codecs="aac"', None, None, 128),
    141: _itag('audio/mp4; codecs="aac"', None, None, 256),
    151: _itag('video/ts; codecs="H.264, aac"', "720p", 50000, 24),
    160: _itag('video/mp4; codecs="H.264"', "144p", 100000, None),
    171: _itag('audio/webm; codecs="vorbis"', None, None, 128),
    172: _itag('audio/webm; codecs="vorbis"', None, None, 192),
    242: _itag('video/webm; codecs="VP9"', "240p", 100000, None),
    243: _itag('video/webm; codecs="VP9"', "360p", 250000, None),
    244: _itag('video/webm; codecs="VP9"', "480p", 500000, None),
    247: _itag('video/webm; codecs="VP9"', "720p", 700000, None),
    248: _itag('video/webm; codecs="VP9"', "1080p", 1500000, None),
    249: _itag('audio/webm; codecs="opus"', None, None, 48),
    250: _itag('audio/webm; codecs="opus"', None, None, 64),
    251: _itag('audio/webm; codecs="opus"', None, None, 160),
    264: _itag('video/mp4; codecs="H.264"', "1440p", 4000000, None),
    266: _itag('video/mp4; codecs="H.264"', "2160p", 12500000, None),
    271: _itag('video/webm; codecs="VP9"', "1440p", 9000000, None),
    272: _itag('video/webm; codecs="VP9"', "4320p", 20000000, None),
    278: _itag('video/webm; codecs="VP9"', "144p 30fps", 80000, None),
    298: _itag('video/mp4; codecs="H.264"', "720p", 3000000, None),
    299: _itag('video/mp4; codecs="H.264"', "1080p", 5500000, None),
    300: _itag('video/ts; codecs="H.264, aac"', "720p", 1318000, 48),
    302: _itag('video/webm; codecs="VP9"', "720p HFR", 2500000, None),
    303: _itag('video/webm; codecs="VP9"', "1080p HFR", 5000000, None),
    308: _itag('video/webm; codecs="VP9"', "1440p HFR", 10000000, None),
    313: _itag('video/webm; codecs="VP9"', "2160p", 13000000, None),
    315: _itag('video/webm; codecs="VP9"', "2160p HFR", 20000000, None),
    330: _itag('video/webm; codecs="VP9"', "144p HDR, HFR", 80000, None),
    331: _itag('video/webm; codecs="VP9"', "240p HDR, HFR", 100000, None),
    332: _itag('video/webm; codecs="VP9"', "360p HDR, HFR", 250000, None),
    333: _itag('video/webm; codecs="VP9"', "240p HDR, HFR", 500000, None),
    334: _itag('video/webm; codecs="VP9"', "720p HDR, HFR", 1000000, None),
    335: _itag('video/webm; codecs="VP9"', "1080p HDR, HFR", 1500000, None),
    336: _itag('video/webm; codecs="VP9"', "1440p HDR, HFR", 5000000, None),
    337: _itag('video/webm; codecs="VP9"', "2160p HDR, HFR", 12000000, None),
}

# Tie-break tables; earlier entries are preferred.
AUDIO_ENCODING_RANKS = ["mp4a", "mp3", "vorbis", "aac", "opus", "flac"]
VIDEO_ENCODING_RANKS = [
    "mp4v",
    "avc1",
    "Sorenson H.283",
    "MPEG-4 Visual",
    "VP8",
    "VP9",
    "H.264",
]

_LIVE_RE = re.compile(r"\bsource[/=]yt_live_broadcast\b")
_HLS_RE = re.compile(r"/manifest/hls_(variant|playlist)/")
_DASH_MPD_RE = re.compile(r"/manifest/dash/")


def add_format_meta(fmt: VideoFormat) -> VideoFormat:
    """
    Return a copy of *fmt* with itag-table defaults filled in and the
    derived fields (has_video, has_audio, container, codecs, video_codec,
    audio_codec, is_live, is_hls, is_dash_mpd) computed.
    """
    defaults = ITAGS.get(fmt.itag, {})
    fmt = fmt.model_copy(
        update={key: value for key, value in defaults.items() if getattr(fmt, key) is None}
    )

    has_video = bool(fmt.quality_label)
    has_audio = bool(fmt.audio_bitrate)
    mime_type = fmt.mime_type or ""
    container = mime_type.split(";")[0].split("/")[1] if "/" in mime_type else None
    codecs = between(mime_type, 'codecs="', '"') or None
    url = fmt.url or ""

    return fmt.model_copy(
        update={
            "has_video": has_video,
            "has_audio": has_audio,
            "container": container,
            "codecs": codecs,
            "video_codec": codecs.split(", ")[0] if has_video and codecs else None,
            "audio_codec": codecs.split(", ")[-1] if has_audio and codecs else None,
            "is_live": bool(_LIVE_RE.search(url)),
            "is_hls": bool(_HLS_RE.search(url)),
            "is_dash_mpd": bool(_DASH_MPD_RE.search(url)),
        }
    )


def _encoding_rank(fmt: VideoFormat, table: list[str]) -> int:
    if not fmt.codecs:
        return 0
    for index, encoding in enumerate(table):
        if encoding in fmt.codecs:
            return len(table) - index
    return 0


def _video_rank(fmt: VideoFormat) -> int:
    return _encoding_rank(fmt, VIDEO_ENCODING_RANKS)


def _audio_rank(fmt: VideoFormat) -> int:
    return _encoding_rank(fmt, AUDIO_ENCODING_RANKS)


def _format_sort_key(fmt: VideoFormat) -> tuple:
    return (
        not fmt.is_hls,
        not fmt.is_dash_mpd,
        (fmt.content_length or 0) > 0,
        fmt.has_video and fmt.has_audio,
        fmt.has_video,
        leading_int(fmt.quality_label),
        fmt.bitrate or 0,
        fmt.audio_bitrate or 0,
        _video_rank(fmt),
        _audio_rank(fmt),
    )


def _video_sort_key(fmt: VideoFormat) -> tuple:
    return (leading_int(fmt.quality_label), fmt.bitrate or 0, _video_rank(fmt))


def _audio_sort_key(fmt: VideoFormat) -> tuple:
    return (fmt.audio_bitrate or 0, _audio_rank(fmt))


def sort_formats(formats: Iterable[VideoFormat]) -> list[VideoFormat]:
    """Return *formats* ranked best first."""
    return sorted(formats, key=_format_sort_key, reverse=True)


_FILTERS: dict[FormatFilter, FormatPredicate] = {
    FormatFilter.VIDEO_AND_AUDIO: lambda f: f.has_video and f.has_audio,
    FormatFilter.AUDIO_AND_VIDEO: lambda f: f.has_video and f.has_audio,
    FormatFilter.VIDEO: lambda f: f.has_video,
    FormatFilter.VIDEO_ONLY: lambda f: f.has_video and not f.has_audio,
    FormatFilter.AUDIO: lambda f: f.has_audio,
    FormatFilter.AUDIO_ONLY: lambda f: f.has_audio and not f.has_video,
}


def filter_formats(
    formats: Iterable[VideoFormat], filter: FormatFilter | str | FormatPredicate
) -> list[VideoFormat]:
    """Keep formats that have a URL and match the named category or predicate."""
    if callable(filter) and not isinstance(filter, str):
        predicate = filter
    else:
        try:
            predicate = _FILTERS[FormatFilter(filter)]
        except ValueError:
            raise InvalidInputError(
                f"Given filter ({filter}) is not supported",
                error_code="format.bad_filter",
            ) from None
    return [f for f in formats if f.url and predicate(f)]


def _by_itag(formats: list[VideoFormat], quality) -> VideoFormat | None:
    wanted = [str(q) for q in quality] if isinstance(quality, list) else [str(quality)]
    for itag in wanted:
        for fmt in formats:
            if str(fmt.itag) == itag:
                return fmt
    return None


def choose_format(
    formats: list[VideoFormat],
    quality: QualityPolicy | str | int | list = QualityPolicy.HIGHEST,
    filter: FormatFilter | str | FormatPredicate | None = None,
    format: VideoFormat | None = None,
) -> VideoFormat:
    """
    Pick one format from a ranked list.

    *quality* is a policy name (highest, lowest, highestaudio, lowestaudio,
    highestvideo, lowestvideo), an itag, or a list of itags tried in order.
    An explicit *format* short-circuits selection but must carry a URL.

    Raises FormatNotFoundError when nothing matches.
    """
    if format is not None:
        if not format.url:
            raise InvalidInputError(
                "Invalid format given, did you use get_info()?",
                error_code="format.unresolved",
            )
        return format

    if filter is not None:
        formats = filter_formats(formats, filter)

    quality = quality if quality is not None else QualityPolicy.HIGHEST
    try:
        policy = QualityPolicy(quality) if isinstance(quality, str) else None
    except ValueError:
        policy = None

    chosen = None
    if policy is QualityPolicy.HIGHEST:
        chosen = formats[0] if formats else None
    elif policy is QualityPolicy.LOWEST:
        chosen = formats[-1] if formats else None
    elif policy in (QualityPolicy.HIGHEST_AUDIO, QualityPolicy.LOWEST_AUDIO):
        ranked = sorted(
            filter_formats(formats, FormatFilter.AUDIO), key=_audio_sort_key, reverse=True
        )
        if ranked:
            chosen = ranked[0] if policy is QualityPolicy.HIGHEST_AUDIO else ranked[-1]
    elif policy in (QualityPolicy.HIGHEST_VIDEO, QualityPolicy.LOWEST_VIDEO):
        ranked = sorted(
            filter_formats(formats, FormatFilter.VIDEO), key=_video_sort_key, reverse=True
        )
        if ranked:
            chosen = ranked[0] if policy is QualityPolicy.HIGHEST_VIDEO else ranked[-1]
    else:
        chosen = _by_itag(formats, quality)

    if chosen is None:
        raise FormatNotFoundError(quality.value if isinstance(quality, QualityPolicy) else quality)
    logger.debug("Chose itag %s for quality %s", chosen.itag, quality)
    return chosen
