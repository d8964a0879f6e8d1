"""Tests for endpoint helpers and the secondary metadata extractors."""

import pytest

from tubefetch.exceptions import ExtractionError
from tubefetch.extractors.base import find_json, find_player_response, get_html5player, parse_json
from tubefetch.extractors.extras import (
    build_video_details,
    clean_video_details,
    get_dislikes,
    get_media,
    get_related_videos,
    get_storyboards,
)
from tubefetch.extractors.youtube import parse_formats


def _related(video_id="abcdefghijk", **overrides):
    details = {
        "videoId": video_id,
        "title": {"simpleText": "Next up"},
        "shortBylineText": {
            "runs": [
                {
                    "text": "Other Channel",
                    "navigationEndpoint": {
                        "browseEndpoint": {"browseId": "UCother", "canonicalBaseUrl": "/@other"}
                    },
                }
            ]
        },
        "viewCountText": {"simpleText": "12,345 views"},
        "shortViewCountText": {"simpleText": "12K views"},
        "lengthText": {"simpleText": "4:13"},
    }
    details.update(overrides)
    return {"compactVideoRenderer": details}


def _watch_next(*results):
    return {
        "response": {
            "contents": {
                "twoColumnWatchNextResults": {
                    "results": {"results": {"contents": list(results)}},
                    "secondaryResults": {"secondaryResults": {"results": []}},
                }
            }
        }
    }


class TestExtractionError:
    def test_message(self):
        err = ExtractionError("something broke")
        assert str(err) == "something broke"
        assert err.error_code is None

    def test_with_code(self):
        err = ExtractionError("nope", error_code="cipher.not_found")
        assert err.error_code == "cipher.not_found"


class TestJsonHelpers:
    def test_parse_json_strips_xssi_prefix(self):
        assert parse_json("watch.json", "response", ')]}\'\n[{"a": 1}]') == [{"a": 1}]

    def test_parse_json_passes_through_objects(self):
        value = {"a": 1}
        assert parse_json("watch.html", "player_response", value) is value

    def test_parse_json_error(self):
        with pytest.raises(ExtractionError) as exc:
            parse_json("get_video_info", "player_response", "{not json")
        assert exc.value.error_code == "json.parse"
        assert "get_video_info" in str(exc.value)

    def test_find_json(self):
        body = 'x = 1;var ytInitialData = {"a": {"b": "};"}};var y = 2;</script>'
        assert find_json("watch.html", "response", body, "var ytInitialData = ", "</script>") == {
            "a": {"b": "};"}
        }

    def test_find_json_missing(self):
        with pytest.raises(ExtractionError) as exc:
            find_json("watch.html", "response", "<html></html>", "var ytInitialData = ", "}};")
        assert exc.value.error_code == "json.not_found"

    @pytest.mark.parametrize(
        "info",
        [
            {"args": {"player_response": '{"videoDetails": {}}'}},
            {"player_response": {"videoDetails": {}}},
            {"playerResponse": {"videoDetails": {}}},
            {"embedded_player_response": '{"videoDetails": {}}'},
        ],
    )
    def test_find_player_response(self, info):
        assert find_player_response("watch.json", info) == {"videoDetails": {}}

    def test_find_player_response_non_dict(self):
        assert find_player_response("watch.json", ["nope"]) is None

    def test_html5player_from_script_tag(self):
        body = '<script src="/s/player/xyz/base.js" name="player_ias/base"></script>'
        assert get_html5player(body) == "/s/player/xyz/base.js"

    def test_html5player_from_js_url(self, watch_html):
        assert get_html5player(watch_html) == "/s/player/abc123/player_ias.vflset/en_US/base.js"

    def test_html5player_missing(self):
        assert get_html5player("<html></html>") is None


class TestStoryboards:
    def test_levels(self):
        spec = (
            "https://i.ytimg.com/sb/ID/storyboard3_L$L/$N.jpg?sqp=abc"
            "|48#27#100#10#10#0#default#rs$AAA"
            "|80#45#250#10#10#2000#M$M#rs$BBB"
        )
        info = {
            "player_response": {"storyboards": {"playerStoryboardSpecRenderer": {"spec": spec}}}
        }
        first, second = get_storyboards(info)
        assert first.template_url == (
            "https://i.ytimg.com/sb/ID/storyboard3_L0/default.jpg?sqp=abc&sigh=rs$AAA"
        )
        assert first.storyboard_count == 1
        assert (first.thumbnail_width, first.thumbnail_height) == (48, 27)
        assert second.template_url.startswith("https://i.ytimg.com/sb/ID/storyboard3_L1/M$M.jpg")
        assert second.interval == 2000
        assert second.storyboard_count == 3

    def test_malformed_level_skipped(self):
        spec = "https://i.ytimg.com/sb/x.jpg|48#27#100#0#0#0#default#s|bad"
        info = {
            "player_response": {"storyboards": {"playerStoryboardSpecRenderer": {"spec": spec}}}
        }
        assert get_storyboards(info) == []

    def test_no_storyboards(self):
        assert get_storyboards({"player_response": {}}) == []


class TestRelatedVideos:
    def _info(self, *results, related_args=None):
        info = _watch_next()
        secondary = info["response"]["contents"]["twoColumnWatchNextResults"]["secondaryResults"]
        secondary["secondaryResults"]["results"] = list(results)
        if related_args:
            info["response"]["webWatchNextResponseExtensionData"] = {
                "relatedVideoArgs": related_args
            }
        return info

    def test_compact_video(self):
        (video,) = get_related_videos(self._info(_related()))
        assert video.id == "abcdefghijk"
        assert video.title == "Next up"
        assert video.view_count == "12345"
        assert video.short_view_count_text == "12K"
        assert video.length_seconds == 253
        assert video.author.user == "@other"
        assert video.author.channel_url == "https://www.youtube.com/channel/UCother"
        assert video.is_live is False

    def test_nested_and_live(self):
        live = _related(
            "live0000000",
            badges=[{"metadataBadgeRenderer": {"label": "LIVE NOW"}}],
        )
        info = self._info({"itemSectionRenderer": {"contents": [live]}})
        (video,) = get_related_videos(info)
        assert video.is_live is True

    def test_falls_back_to_related_args(self):
        entry = _related(shortViewCountText=None, viewCountText=None, lengthText=None)
        info = self._info(
            entry, related_args="id=abcdefghijk&short_view_count_text=9K+views&length_seconds=61"
        )
        (video,) = get_related_videos(info)
        assert video.short_view_count_text == "9K"
        assert video.length_seconds == 61

    def test_broken_entry_skipped(self):
        broken = _related("broken00000", shortBylineText={})
        videos = get_related_videos(self._info(broken, _related()))
        assert [v.id for v in videos] == ["abcdefghijk"]


class TestWatchNextExtras:
    def test_dislikes(self):
        primary = {
            "videoPrimaryInfoRenderer": {
                "videoActions": {
                    "menuRenderer": {
                        "topLevelButtons": [
                            {
                                "toggleButtonRenderer": {
                                    "defaultIcon": {"iconType": "DISLIKE"},
                                    "defaultText": {
                                        "accessibility": {
                                            "accessibilityData": {"label": "56 dislikes"}
                                        }
                                    },
                                }
                            }
                        ]
                    }
                }
            }
        }
        assert get_dislikes(_watch_next(primary)) == 56
        assert get_dislikes(_watch_next()) is None

    def test_media_rows(self):
        secondary = {
            "videoSecondaryInfoRenderer": {
                "metadataRowContainer": {
                    "metadataRowContainerRenderer": {
                        "rows": [
                            {
                                "metadataRowRenderer": {
                                    "title": {"simpleText": "Song"},
                                    "contents": [{"simpleText": "Never Gonna Give You Up"}],
                                }
                            }
                        ]
                    }
                }
            }
        }
        media = get_media(_watch_next(secondary))
        assert media["song"] == "Never Gonna Give You Up"
        assert media["category"] == "Music"
        assert media["category_url"] == "https://music.youtube.com/"

    def test_media_missing(self):
        assert get_media(_watch_next()) == {}

    def test_clean_video_details(self):
        details = {
            "title": {"runs": [{"text": "Title"}]},
            "shortDescription": "Desc",
            "lengthSeconds": "1",
            "thumbnail": {"thumbnails": [{"url": "//i.ytimg.com/vi/x/default.jpg", "width": 120}]},
        }
        info = {
            "player_response": {
                "microformat": {"playerMicroformatRenderer": {"lengthSeconds": "212"}}
            }
        }
        cleaned = clean_video_details(details, info)
        assert cleaned["title"] == "Title"
        assert cleaned["description"] == "Desc"
        assert cleaned["lengthSeconds"] == 212
        assert "thumbnail" not in cleaned
        assert cleaned["thumbnails"][0].url == "https://i.ytimg.com/vi/x/default.jpg"

    def test_unparsable_counts_become_none(self):
        cleaned = clean_video_details({"viewCount": "", "lengthSeconds": "n/a"}, {})
        assert cleaned["viewCount"] is None
        assert cleaned["lengthSeconds"] is None

    def test_malformed_fields_dropped(self):
        details = build_video_details(
            {
                "title": "Title",
                "keywords": "not-a-list",
                "isPrivate": {"unexpected": True},
                "age_restricted": "maybe",
            }
        )
        assert details.title == "Title"
        assert details.keywords == []
        assert details.is_private is None
        assert details.age_restricted is False


class TestParseFormats:
    def test_progressive_then_adaptive(self):
        player_response = {
            "streamingData": {
                "formats": [{"itag": 18, "url": "https://a"}],
                "adaptiveFormats": [{"itag": 140, "url": "https://b"}, {"url": "no-itag"}],
            }
        }
        assert [f.itag for f in parse_formats(player_response)] == [18, 140]

    def test_no_streaming_data(self):
        assert parse_formats({}) == []
