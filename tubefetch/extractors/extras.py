"""
Secondary metadata pulled from the merged record: media rows, author,
related videos, like/dislike counts, storyboards and the cleaned-up video
details.

The watch-next data changes shape often. Each extractor here stands alone
and yields an empty result for its own piece when a nested field is
missing.
"""

import logging
import math
import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from ..core.text import parse_abbreviated_number
from ..models.response import Author, RelatedVideo, Storyboard, Thumbnail, VideoDetails
from ..utils.helpers import absolute_url, get_text, int_or_none, parse_timestamp, traverse_obj

logger = logging.getLogger(__name__)

TITLE_TO_CATEGORY = {
    "song": {"name": "Music", "url": "https://music.youtube.com/"},
}

_LOOKUP_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError)


def _watch_contents(info: dict) -> list:
    return traverse_obj(
        info,
        ("response", "contents", "twoColumnWatchNextResults", "results", "results", "contents"),
        default=[],
    )


def _find(items: list, key: str) -> dict | None:
    return next((item for item in items if isinstance(item, dict) and item.get(key)), None)


def _command_url(endpoint: dict) -> str:
    return absolute_url(endpoint["commandMetadata"]["webCommandMetadata"]["url"])


def _thumbnails(raw: Any) -> list[Thumbnail]:
    thumbnails = []
    for thumb in raw or []:
        try:
            thumbnails.append(Thumbnail(**{**thumb, "url": absolute_url(thumb["url"])}))
        except (*_LOOKUP_ERRORS, ValidationError):
            continue
    return thumbnails


def _is_verified(badges: list | None) -> bool:
    return any(
        traverse_obj(badge, ("metadataBadgeRenderer", "tooltip")) == "Verified"
        for badge in badges or []
    )


def get_media(info: dict) -> dict[str, Any]:
    """Media rows under the description (song, artist, game, category...)."""
    result = _find(_watch_contents(info), "videoSecondaryInfoRenderer")
    if not result:
        return {}

    media: dict[str, Any] = {}
    rows = traverse_obj(
        result,
        ("metadataRowContainer", "metadataRowContainerRenderer", "rows"),
        (
            "videoSecondaryInfoRenderer",
            "metadataRowContainer",
            "metadataRowContainerRenderer",
            "rows",
        ),
        default=[],
    )
    try:
        for row in rows:
            if row.get("metadataRowRenderer"):
                renderer = row["metadataRowRenderer"]
                title = get_text(renderer["title"]).lower()
                contents = renderer["contents"][0]
                media[title] = get_text(contents)
                endpoint = traverse_obj(contents, ("runs", 0, "navigationEndpoint"))
                if endpoint:
                    media[f"{title}_url"] = _command_url(endpoint)
                if title in TITLE_TO_CATEGORY:
                    media["category"] = TITLE_TO_CATEGORY[title]["name"]
                    media["category_url"] = TITLE_TO_CATEGORY[title]["url"]
            elif row.get("richMetadataRowRenderer"):
                contents = row["richMetadataRowRenderer"]["contents"]
                for item in contents:
                    meta = item["richMetadataRenderer"]
                    style = meta.get("style")
                    if style == "RICH_METADATA_RENDERER_STYLE_BOX_ART":
                        media["year"] = get_text(meta.get("subtitle"))
                        kind = get_text(meta["callToAction"]).split(" ")[1]
                        media[kind] = get_text(meta.get("title"))
                        media[f"{kind}_url"] = _command_url(meta["endpoint"])
                        media["thumbnails"] = meta["thumbnail"]["thumbnails"]
                    elif style == "RICH_METADATA_RENDERER_STYLE_TOPIC":
                        media["category"] = get_text(meta.get("title"))
                        media["category_url"] = _command_url(meta["endpoint"])
    except _LOOKUP_ERRORS as e:
        logger.debug("Incomplete media rows: %s", e)
    return media


def get_author(info: dict) -> Author | None:
    channel_id = None
    thumbnails: list[Thumbnail] = []
    subscriber_count = None
    verified = False

    owner = _find(_watch_contents(info), "videoSecondaryInfoRenderer")
    renderer = traverse_obj(owner, ("videoSecondaryInfoRenderer", "owner", "videoOwnerRenderer"))
    if renderer:
        channel_id = traverse_obj(renderer, ("navigationEndpoint", "browseEndpoint", "browseId"))
        thumbnails = _thumbnails(traverse_obj(renderer, ("thumbnail", "thumbnails")))
        subscriber_count = parse_abbreviated_number(get_text(renderer.get("subscriberCountText")))
        verified = _is_verified(renderer.get("badges"))

    player_response = info.get("player_response") or {}
    micro = traverse_obj(player_response, ("microformat", "playerMicroformatRenderer"))
    details = player_response.get("videoDetails") or {}
    author_id = (micro or {}).get("channelId") or channel_id or details.get("channelId")
    if not author_id and not micro and not details:
        return None

    profile_url = (micro or {}).get("ownerProfileUrl")
    return Author(
        id=author_id,
        name=micro.get("ownerChannelName") if micro else details.get("author"),
        user=profile_url.rstrip("/").split("/")[-1] if profile_url else None,
        channel_url=f"https://www.youtube.com/channel/{author_id}",
        external_channel_url=(
            f"https://www.youtube.com/channel/{micro['externalChannelId']}"
            if micro and micro.get("externalChannelId")
            else ""
        ),
        user_url=absolute_url(profile_url) if profile_url else "",
        thumbnails=thumbnails,
        verified=verified,
        subscriber_count=subscriber_count,
    )


def _parse_related_video(details: dict | None, rvs_params: list[dict]) -> RelatedVideo | None:
    if not details:
        return None
    try:
        view_count = get_text(details.get("viewCountText")) or ""
        short_view_count = get_text(details.get("shortViewCountText")) or ""
        rvs_details = next((p for p in rvs_params if p.get("id") == details["videoId"]), None)
        if not re.match(r"\d", short_view_count):
            short_view_count = (rvs_details or {}).get("short_view_count_text", "")
        view_count = (view_count if re.match(r"\d", view_count) else short_view_count).split(" ")[0]

        browse = details["shortBylineText"]["runs"][0]["navigationEndpoint"]["browseEndpoint"]
        channel_id = browse["browseId"]
        user = (browse.get("canonicalBaseUrl") or "").split("/")[-1]
        length_text = get_text(details.get("lengthText"))

        return RelatedVideo(
            id=details["videoId"],
            title=get_text(details.get("title")),
            published=get_text(details.get("publishedTimeText")),
            author=Author(
                id=channel_id,
                name=get_text(details["shortBylineText"]),
                user=user,
                channel_url=f"https://www.youtube.com/channel/{channel_id}",
                user_url=f"https://www.youtube.com/user/{user}",
                thumbnails=_thumbnails(traverse_obj(details, ("channelThumbnail", "thumbnails"))),
                verified=_is_verified(details.get("ownerBadges")),
            ),
            short_view_count_text=short_view_count.split(" ")[0],
            view_count=view_count.replace(",", ""),
            length_seconds=(
                parse_timestamp(length_text)
                if length_text
                else int_or_none((rvs_details or {}).get("length_seconds"))
            ),
            thumbnails=_thumbnails(traverse_obj(details, ("thumbnail", "thumbnails"))),
            rich_thumbnails=_thumbnails(
                traverse_obj(
                    details,
                    ("richThumbnail", "movingThumbnailRenderer", "movingThumbnailDetails", "thumbnails"),
                )
            ),
            is_live=any(
                traverse_obj(badge, ("metadataBadgeRenderer", "label")) == "LIVE NOW"
                for badge in details.get("badges") or []
            ),
        )
    except (*_LOOKUP_ERRORS, ValidationError) as e:
        logger.debug("Skipping related video: %s", e)
        return None


def get_related_videos(info: dict) -> list[RelatedVideo]:
    rvs_params: list[dict] = []
    related_args = traverse_obj(
        info, ("response", "webWatchNextResponseExtensionData", "relatedVideoArgs")
    )
    if isinstance(related_args, str):
        rvs_params = [dict(parse_qsl(part)) for part in related_args.split(",")]

    results = traverse_obj(
        info,
        (
            "response",
            "contents",
            "twoColumnWatchNextResults",
            "secondaryResults",
            "secondaryResults",
            "results",
        ),
        default=[],
    )
    videos = []
    for result in results:
        if not isinstance(result, dict):
            continue
        if result.get("compactVideoRenderer"):
            candidates = [result["compactVideoRenderer"]]
        else:
            wrapper = result.get("compactAutoplayRenderer") or result.get("itemSectionRenderer")
            contents = (wrapper or {}).get("contents")
            if not isinstance(contents, list):
                continue
            candidates = [c.get("compactVideoRenderer") for c in contents if isinstance(c, dict)]
        for details in candidates:
            video = _parse_related_video(details, rvs_params)
            if video:
                videos.append(video)
    return videos


def _toggle_count(info: dict, icon_type: str) -> int | None:
    video = _find(_watch_contents(info), "videoPrimaryInfoRenderer")
    buttons = traverse_obj(
        video,
        ("videoPrimaryInfoRenderer", "videoActions", "menuRenderer", "topLevelButtons"),
        default=[],
    )
    for button in buttons:
        renderer = button.get("toggleButtonRenderer") if isinstance(button, dict) else None
        if traverse_obj(renderer, ("defaultIcon", "iconType")) == icon_type:
            label = traverse_obj(
                renderer, ("defaultText", "accessibility", "accessibilityData", "label")
            )
            digits = re.sub(r"\D+", "", label or "")
            return int(digits) if digits else None
    return None


def get_likes(info: dict) -> int | None:
    return _toggle_count(info, "LIKE")


def get_dislikes(info: dict) -> int | None:
    return _toggle_count(info, "DISLIKE")


def clean_video_details(details: dict[str, Any], info: dict) -> dict[str, Any]:
    """Normalize the merged microformat/videoDetails mapping in place."""
    details["thumbnails"] = _thumbnails(traverse_obj(details, ("thumbnail", "thumbnails")))
    details.pop("thumbnail", None)
    description = details.pop("shortDescription", None) or details.get("description")
    details["description"] = description if isinstance(description, str) else get_text(description)
    if isinstance(details.get("title"), dict):
        details["title"] = get_text(details["title"])
    # lengthSeconds from the microformat is the more reliable one
    length = traverse_obj(
        info, ("player_response", "microformat", "playerMicroformatRenderer", "lengthSeconds")
    )
    if length is not None:
        details["lengthSeconds"] = length
    for key in ("lengthSeconds", "viewCount"):
        if key in details:
            details[key] = int_or_none(details[key])
    return details


def build_video_details(details: dict[str, Any]) -> VideoDetails:
    """Validate *details*, dropping any field whose upstream type changed."""
    try:
        return VideoDetails.model_validate(details)
    except ValidationError as e:
        bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        logger.warning("Dropping malformed video detail fields: %s", ", ".join(sorted(bad)))
        kept = {k: v for k, v in details.items() if k not in bad and to_camel(k) not in bad}
        return VideoDetails.model_validate(kept)


def get_storyboards(info: dict) -> list[Storyboard]:
    spec = traverse_obj(
        info, ("player_response", "storyboards", "playerStoryboardSpecRenderer", "spec")
    )
    if not isinstance(spec, str):
        return []

    parts = spec.split("|")
    base = urlsplit(parts.pop(0))
    storyboards = []
    for level, part in enumerate(parts):
        try:
            (
                thumbnail_width,
                thumbnail_height,
                thumbnail_count,
                columns,
                rows,
                interval,
                name_replacement,
                sigh,
            ) = part.split("#")
            query = dict(parse_qsl(base.query, keep_blank_values=True))
            query["sigh"] = sigh
            template_url = urlunsplit(base._replace(query=urlencode(query, safe="$")))
            thumbnail_count, columns, rows = int(thumbnail_count), int(columns), int(rows)
            storyboards.append(
                Storyboard(
                    template_url=template_url.replace("$L", str(level), 1).replace(
                        "$N", name_replacement, 1
                    ),
                    thumbnail_width=int(thumbnail_width),
                    thumbnail_height=int(thumbnail_height),
                    thumbnail_count=thumbnail_count,
                    interval=int(interval),
                    columns=columns,
                    rows=rows,
                    storyboard_count=math.ceil(thumbnail_count / (columns * rows)),
                )
            )
        except (ValueError, ZeroDivisionError) as e:
            logger.debug("Skipping storyboard level %d: %s", level, e)
    return storyboards
