"""Tests for the HTTP surface."""

import json

import pytest
import respx
from fastapi.testclient import TestClient

from tubefetch.main import app

VIDEO_ID = "dQw4w9WgXcQ"
WATCH_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}&hl=en"
PLAYER_PATH = "/s/player/abc123/player_ias.vflset/en_US/base.js"
MEDIA_URL = "https://rr1.googlevideo.com/videoplayback?itag=18"

PLAYER_RESPONSE = {
    "playabilityStatus": {"status": "OK"},
    "streamingData": {
        "formats": [
            {
                "itag": 18,
                "url": MEDIA_URL,
                "mimeType": 'video/mp4; codecs="avc1.42001E, mp4a.40.2"',
                "qualityLabel": "360p",
            }
        ]
    },
    "videoDetails": {"videoId": VIDEO_ID, "title": "Stub"},
}


def _page() -> str:
    return "\n".join(
        [
            f'<script>var ytcfg={{"jsUrl":"{PLAYER_PATH}"}};</script>',
            f"<script>var ytInitialPlayerResponse = {json.dumps(PLAYER_RESPONSE)};</script>",
            "<script>var ytInitialData = {};</script>",
        ]
    )


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def youtube(player_js):
    with respx.mock(assert_all_called=False) as mock:
        mock.get(f"https://www.youtube.com{PLAYER_PATH}").respond(200, text=player_js)
        mock.get(WATCH_URL).respond(200, text=_page())
        mock.get(url__startswith=MEDIA_URL).respond(
            200, content=b"media-bytes", headers={"Content-Type": "video/mp4"}
        )
        yield mock


class TestRoot:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "tubefetch"
        assert body["endpoints"]["info"] == "/api/info"

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestErrors:
    def test_bad_domain(self, client):
        response = client.post("/api/info", json={"url": "https://example.com/watch?v=" + VIDEO_ID})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["success"] is False
        assert detail["error_code"] == "video_id.bad_domain"

    def test_missing_url(self, client):
        assert client.post("/api/info", json={}).status_code == 422

    def test_retries_out_of_range(self, client):
        response = client.post("/api/info", json={"url": VIDEO_ID, "max_retries": 50})
        assert response.status_code == 422


class TestResolve:
    def test_info(self, client, youtube):
        response = client.post("/api/info", json={"url": f"https://youtu.be/{VIDEO_ID}"})
        assert response.status_code == 200
        body = response.json()
        assert body["videoId"] == VIDEO_ID
        assert body["full"] is True
        (fmt,) = body["formats"]
        assert fmt["itag"] == 18
        assert "ratebypass=yes" in fmt["url"]
        assert "player_response" not in body

    def test_choose_unknown_itag(self, client, youtube):
        response = client.post("/api/choose", json={"url": VIDEO_ID, "quality": 999})
        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "format.not_found"

    def test_download(self, client, youtube):
        response = client.get("/api/download", params={"url": VIDEO_ID})
        assert response.status_code == 200
        assert response.content == b"media-bytes"
        assert response.headers["x-itag"] == "18"
        assert response.headers["content-type"].startswith("video/mp4")
