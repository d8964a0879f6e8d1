"""
Base class for the metadata endpoints plus the JSON helpers they share.

Every endpoint returns a raw record: an untyped dict whose interesting keys
are ``player_response``, ``response`` (the watch-next data) and
``html5player``. The pipeline merges these records; their schema is never
assumed beyond what each consumer checks for.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..core.text import between, cut_after_json
from ..exceptions import ExtractionError
from ..models.request import GetInfoOptions
from ..utils.helpers import BASE_URL, traverse_obj

if TYPE_CHECKING:
    from .youtube import YouTubeExtractor

logger = logging.getLogger(__name__)

_JSON_CLOSING_CHARS = re.compile(r"^[)\]}'\s]+")

_HTML5PLAYER_RE = re.compile(
    r'<script\s+src="([^"]+)"(?:\s+type="text\/javascript")?\s+name="player_ias\/base"\s*>'
    r'|"jsUrl":"([^"]+)"'
)


def watch_html_url(video_id: str, options: GetInfoOptions) -> str:
    return f"{BASE_URL}{video_id}&hl={options.lang or 'en'}"


def parse_json(source: str, var_name: str, value: Any) -> Any:
    """Decode *value* if it is a JSON string, stripping anti-XSSI prefixes."""
    if not value or not isinstance(value, str):
        return value
    try:
        return json.loads(_JSON_CLOSING_CHARS.sub("", value))
    except json.JSONDecodeError as e:
        raise ExtractionError(
            f"Error parsing {var_name} in {source}: {e}", error_code="json.parse"
        ) from e


def find_json(
    source: str,
    var_name: str,
    body: str,
    left: str | re.Pattern,
    right: str,
    prepend: str = "",
) -> Any:
    """Locate the JSON value between *left* and *right* in *body* and decode it."""
    json_str = between(body, left, right)
    if not json_str:
        raise ExtractionError(
            f"Could not find {var_name} in {source}", error_code="json.not_found"
        )
    return parse_json(source, var_name, cut_after_json(f"{prepend}{json_str}"))


def find_player_response(source: str, info: Any) -> Any:
    """Pick the player response out of whichever key this endpoint used."""
    if not isinstance(info, dict):
        return None
    player_response = traverse_obj(
        info,
        ("args", "player_response"),
        ("player_response",),
        ("playerResponse",),
        ("embedded_player_response",),
    )
    return parse_json(source, "player_response", player_response)


def get_html5player(body: str) -> str | None:
    """Return the player script URL referenced by a watch or embed page."""
    match = _HTML5PLAYER_RE.search(body or "")
    if not match:
        return None
    return match.group(1) or match.group(2)


class BaseEndpoint(ABC):
    """
    One metadata source in the pipeline.

    Subclasses set ``name`` and implement :meth:`fetch`. Errors are raised,
    never swallowed: the pipeline decides between retrying, falling back
    and aborting.
    """

    name: str

    def __init__(self, extractor: "YouTubeExtractor"):
        self.extractor = extractor

    @property
    def http(self):
        return self.extractor.http

    @abstractmethod
    async def fetch(self, video_id: str, options: GetInfoOptions) -> dict[str, Any]:
        """Return a raw metadata record for *video_id*."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
