from pydantic import BaseModel, Field, field_validator

from ..config import get_settings
from ..utils.helpers import is_ipv6
from .enums import FormatFilter

QualityValue = str | int | list[str | int]


class ByteRange(BaseModel):
    """Inclusive byte range; ``end`` of None means "to the end"."""

    start: int = Field(0, ge=0)
    end: int | None = Field(None, ge=0)


class GetInfoOptions(BaseModel):
    """Options for resolving a video's metadata and formats."""

    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra request headers, merged over the default User-Agent",
    )
    lang: str = Field(
        default_factory=lambda: get_settings().lang,
        max_length=16,
        description="Interface language passed as the hl parameter",
    )
    max_retries: int = Field(
        default_factory=lambda: get_settings().pipeline_max_retries,
        ge=0,
        le=10,
        description="Retries per metadata endpoint before falling back",
    )
    backoff_inc: float = Field(
        default_factory=lambda: get_settings().backoff_inc,
        ge=0,
        description="Linear back-off increment between retries, in seconds",
    )
    backoff_max: float = Field(
        default_factory=lambda: get_settings().backoff_max,
        ge=0,
        description="Back-off cap, in seconds",
    )


class DownloadOptions(GetInfoOptions):
    """Options for choosing a format and streaming its bytes."""

    quality: QualityValue = Field(
        default="highest",
        description="Policy name, itag, or list of itags tried in order",
    )
    filter: FormatFilter | None = Field(
        default=None,
        description="Restrict candidates to a named category",
    )
    dl_chunk_size: int = Field(
        default_factory=lambda: get_settings().dl_chunk_size,
        ge=0,
        description="Bytes per ranged request; 0 disables chunking",
    )
    range: ByteRange | None = Field(default=None, description="Byte range to download")
    begin: str | None = Field(
        default=None,
        description="Start offset for formats that support the begin parameter",
    )
    ipv6_block: str | None = Field(
        default=None,
        description="IPv6 CIDR block to pick a random source address from",
    )

    @field_validator("ipv6_block")
    @classmethod
    def _check_ipv6_block(cls, value: str | None) -> str | None:
        if value is not None and not is_ipv6(value):
            raise ValueError("Invalid IPv6 format")
        return value


class InfoRequest(GetInfoOptions):
    """Request model for the /info endpoints."""

    url: str = Field(
        ...,
        max_length=2048,
        description="Video URL or bare 11-character id",
        examples=["https://www.youtube.com/watch?v=dQw4w9WgXcQ"],
    )


class ChooseRequest(DownloadOptions):
    """Request model for the /choose endpoint."""

    url: str = Field(..., max_length=2048, description="Video URL or bare 11-character id")
