"""HTML watch page endpoint."""

import re
from typing import Any

from ..exceptions import ExtractionError
from ..models.request import GetInfoOptions
from .base import BaseEndpoint, find_json, find_player_response, get_html5player

_PLAYER_RESPONSE_RE = re.compile(r"\bytInitialPlayerResponse\s*=\s*\{", re.IGNORECASE)
_PLAYER_CONFIG_RE = re.compile(r"\bytplayer\.config\s*=\s*\{")
_INITIAL_DATA_RE = re.compile(r"\bytInitialData(\"\])?\s*=\s*\{", re.IGNORECASE)


class WatchHTMLEndpoint(BaseEndpoint):
    """Scrapes the player response and watch-next data out of the watch page."""

    name = "watch.html"

    async def fetch(self, video_id: str, options: GetInfoOptions) -> dict[str, Any]:
        body = await self.extractor.get_watch_page_body(video_id, options)
        info: dict[str, Any] = {"page": "watch"}
        try:
            info["player_response"] = find_json(
                self.name, "player_response", body, _PLAYER_RESPONSE_RE, "\n", "{"
            )
        except ExtractionError:
            args = find_json(self.name, "player_response", body, _PLAYER_CONFIG_RE, "</script>", "{")
            info["player_response"] = find_player_response(self.name, args)
        info["response"] = find_json(self.name, "response", body, _INITIAL_DATA_RE, "\n", "{")
        info["html5player"] = get_html5player(body)
        return info
