"""
JSON watch page endpoint (``&pbj=1``).

Cookie-bearing requests need the account's identity token, which only the
HTML watch page exposes; it is cached per cookie value.
"""

import logging
from typing import Any

from ..exceptions import ExtractionError
from ..models.request import GetInfoOptions
from ..utils.helpers import traverse_obj
from .base import BaseEndpoint, find_player_response, parse_json, watch_html_url

logger = logging.getLogger(__name__)

CLIENT_NAME = "1"
CLIENT_VERSION = "2.20201203.06.00"


class WatchJSONEndpoint(BaseEndpoint):
    name = "watch.json"

    async def fetch(self, video_id: str, options: GetInfoOptions) -> dict[str, Any]:
        cookie = options.headers.get("Cookie") or options.headers.get("cookie")
        headers = {
            "x-youtube-client-name": CLIENT_NAME,
            "x-youtube-client-version": CLIENT_VERSION,
            "x-youtube-identity-token": self.extractor.caches.identity_tokens.get(
                cookie or "browser"
            )
            or "",
            **options.headers,
        }

        async def set_identity_token(key: str, required: bool) -> None:
            if headers["x-youtube-identity-token"]:
                return
            token = await self.extractor.get_identity_token(video_id, options, key, required)
            headers["x-youtube-identity-token"] = token or ""

        if cookie:
            await set_identity_token(cookie, True)

        url = f"{watch_html_url(video_id, options)}&pbj=1"
        body = await self.http.get_text(url, headers=headers, retries=0)
        parsed = parse_json(self.name, "body", body)

        if isinstance(parsed, dict) and parsed.get("reload") == "now":
            # Prime the token for the next attempt
            await set_identity_token("browser", False)
        if not isinstance(parsed, list):
            raise ExtractionError(
                "Unable to retrieve video metadata in watch.json",
                error_code="watch_json.unavailable",
            )

        info: dict[str, Any] = {}
        for part in parsed:
            if isinstance(part, dict):
                for key, value in part.items():
                    info.setdefault(key, value)

        info["player_response"] = find_player_response(self.name, info)
        info["html5player"] = traverse_obj(info, ("player", "assets", "js"))
        return info
