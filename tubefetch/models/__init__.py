from .enums import FormatFilter, PlayabilityStatus, QualityPolicy
from .request import ByteRange, ChooseRequest, DownloadOptions, GetInfoOptions, InfoRequest
from .response import (
    Author,
    ErrorResponse,
    RelatedVideo,
    Storyboard,
    Thumbnail,
    VideoDetails,
    VideoFormat,
    VideoInfo,
)

__all__ = [
    "Author",
    "ByteRange",
    "ChooseRequest",
    "DownloadOptions",
    "ErrorResponse",
    "FormatFilter",
    "GetInfoOptions",
    "InfoRequest",
    "PlayabilityStatus",
    "QualityPolicy",
    "RelatedVideo",
    "Storyboard",
    "Thumbnail",
    "VideoDetails",
    "VideoFormat",
    "VideoInfo",
]
