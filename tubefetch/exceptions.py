"""
Error taxonomy shared by every component.

Callers can tell "this video cannot be played" (UnrecoverableError) apart
from "the page format could not be parsed" (plain ExtractionError) by type
and by ``error_code``.
"""


class ExtractionError(Exception):
    """Raised when video metadata or media URLs cannot be extracted."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class UnrecoverableError(ExtractionError):
    """The video is private, errored or otherwise gated. Never retried."""


class InvalidInputError(ExtractionError):
    """A caller-supplied value (id, URL, filter, option) is malformed."""


class VideoIdError(InvalidInputError):
    """No valid video id could be derived from the given string."""


class FormatNotFoundError(InvalidInputError):
    """No format matched the requested quality/filter policy."""

    def __init__(self, quality):
        super().__init__(f"No such format found: {quality}", error_code="format.not_found")
        self.quality = quality


class TransportError(ExtractionError):
    """An HTTP request failed with an error status or a network error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message, error_code="transport.failed")
        self.status_code = status_code
        self.url = url
        if retryable is None:
            retryable = status_code is None or status_code >= 500 or status_code == 429
        self.retryable = retryable


class CipherError(ExtractionError):
    """Signature/n-parameter transforms are needed but unavailable."""


class NoFormatsError(ExtractionError):
    """Every candidate format was dropped during normalization."""
