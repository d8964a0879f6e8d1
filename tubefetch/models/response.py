from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Accepts the platform's camelCase keys and Python field names alike."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoFormat(_CamelModel):
    """One streamable variant, raw from the platform or normalized."""

    model_config = ConfigDict(extra="allow")

    itag: int = Field(..., description="Encoding/quality variant id")
    url: str | None = Field(None, description="Direct media URL once resolved")
    mime_type: str | None = Field(None, description='e.g. video/mp4; codecs="avc1.4d401f"')
    bitrate: int | None = Field(None, description="Bitrate in bits per second")
    audio_bitrate: int | None = Field(None, description="Audio bitrate in kbps")
    width: int | None = None
    height: int | None = None
    fps: int | None = None
    quality: str | None = None
    quality_label: str | None = Field(None, description="e.g. '1080p60'")
    content_length: int | None = Field(None, description="Size in bytes, when known")
    audio_sample_rate: int | None = None
    audio_channels: int | None = None
    approx_duration_ms: int | None = None
    average_bitrate: int | None = None
    signature_cipher: str | None = Field(
        None, description="Query-string blob holding url, s and sp"
    )
    cipher: str | None = Field(None, description="Older name of signature_cipher")

    # Derived by add_format_meta
    has_video: bool = False
    has_audio: bool = False
    container: str | None = None
    codecs: str | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    is_live: bool = False
    is_hls: bool = Field(False, alias="isHLS")
    is_dash_mpd: bool = Field(False, alias="isDashMPD")


class Thumbnail(BaseModel):
    url: str
    width: int | None = None
    height: int | None = None


class Author(_CamelModel):
    """Channel that uploaded a video."""

    id: str | None = None
    name: str | None = None
    user: str | None = None
    channel_url: str | None = None
    external_channel_url: str | None = None
    user_url: str | None = None
    thumbnails: list[Thumbnail] = Field(default_factory=list)
    verified: bool = False
    subscriber_count: int | None = None


class RelatedVideo(_CamelModel):
    id: str
    title: str | None = None
    published: str | None = None
    author: Author | None = None
    short_view_count_text: str | None = None
    view_count: str | None = None
    length_seconds: int | None = None
    thumbnails: list[Thumbnail] = Field(default_factory=list)
    rich_thumbnails: list[Thumbnail] = Field(default_factory=list)
    is_live: bool = False


class Storyboard(_CamelModel):
    """One level of seek-preview sprite sheets."""

    template_url: str
    thumbnail_width: int
    thumbnail_height: int
    thumbnail_count: int
    interval: int
    columns: int
    rows: int
    storyboard_count: int


class VideoDetails(_CamelModel):
    """Merged microformat and videoDetails record plus derived extras."""

    model_config = ConfigDict(extra="allow")

    video_id: str | None = None
    title: str | None = None
    description: str | None = None
    length_seconds: int | None = None
    view_count: int | None = None
    keywords: list[str] = Field(default_factory=list)
    channel_id: str | None = None
    category: str | None = None
    publish_date: str | None = None
    upload_date: str | None = None
    is_live_content: bool | None = None
    is_private: bool | None = None
    is_unlisted: bool | None = None
    is_family_safe: bool | None = None
    available_countries: list[str] = Field(default_factory=list)
    thumbnails: list[Thumbnail] = Field(default_factory=list)

    author: Author | None = None
    media: dict[str, Any] = Field(default_factory=dict)
    likes: int | None = None
    dislikes: int | None = None
    age_restricted: bool = False
    video_url: str | None = None
    storyboards: list[Storyboard] = Field(default_factory=list)


class VideoInfo(_CamelModel):
    """Result of resolving a video id."""

    video_id: str
    formats: list[VideoFormat] = Field(default_factory=list)
    video_details: VideoDetails = Field(default_factory=VideoDetails)
    related_videos: list[RelatedVideo] = Field(default_factory=list)
    html5player: str | None = Field(None, description="Player script URL")
    player_response: dict[str, Any] = Field(default_factory=dict, exclude=True)
    full: bool = Field(False, description="Whether formats were deciphered and expanded")


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = Field(False)
    error: str = Field(..., description="Error message")
    error_code: str | None = Field(None, description="Machine-readable error code")
