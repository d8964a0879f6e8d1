"""Legacy ``get_video_info`` endpoint, answered as a URL-encoded query string."""

from typing import Any
from urllib.parse import parse_qsl

from ..models.request import GetInfoOptions
from .base import BaseEndpoint, find_player_response

INFO_URL = "https://www.youtube.com/get_video_info"
VIDEO_EURL = "https://youtube.googleapis.com/v/"


class VideoInfoEndpoint(BaseEndpoint):
    name = "get_video_info"

    async def fetch(self, video_id: str, options: GetInfoOptions) -> dict[str, Any]:
        params = {
            "video_id": video_id,
            "eurl": VIDEO_EURL + video_id,
            "ps": "default",
            "gl": "US",
            "hl": options.lang or "en",
            "html5": "1",
        }
        body = await self.http.get_text(
            INFO_URL, params=params, headers=options.headers, retries=0
        )
        info: dict[str, Any] = dict(parse_qsl(body, keep_blank_values=True))
        info["player_response"] = find_player_response(self.name, info)
        return info
