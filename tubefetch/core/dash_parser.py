"""
DASH (MPD) manifest parser.

The manifest is parsed incrementally while it streams in: the enclosing
AdaptationSet's mimeType is tracked and every Representation with a
numeric id becomes one format pointing at the manifest URL. Video
representations carry width, height and frame rate; audio ones carry the
sampling rate.
"""

import logging
from xml.etree import ElementTree as ET

from ..exceptions import ExtractionError
from ..models.response import VideoFormat
from ..utils.helpers import absolute_url, float_or_none, int_or_none
from .http_client import HTTPClient

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    """Strip the XML namespace: '{urn:...}Representation' -> 'Representation'."""
    return tag.rsplit("}", 1)[-1]


def _parse_frame_rate(value: str | None) -> int | None:
    """Parse frame rate, handling fractional notation like '30000/1001'."""
    if not value:
        return None
    if "/" in value:
        parts = value.split("/")
        try:
            return round(float(parts[0]) / float(parts[1]))
        except (ValueError, ZeroDivisionError):
            return None
    rate = float_or_none(value)
    return round(rate) if rate is not None else None


class DashManifestParser:
    """
    Push parser for DASH manifests.

    Feed text with :meth:`feed` as it arrives and collect the formats with
    :meth:`close`.
    """

    def __init__(self, manifest_url: str):
        self.manifest_url = manifest_url
        self._parser = ET.XMLPullParser(events=("start",))
        self._adaptation_mime: str | None = None
        self.formats: dict[tuple[int, str], VideoFormat] = {}

    def feed(self, data: str | bytes) -> None:
        try:
            self._parser.feed(data)
        except ET.ParseError as e:
            raise ExtractionError(
                f"Failed to parse DASH manifest: {e}", error_code="dash.parse"
            ) from e
        self._drain()

    def close(self) -> list[VideoFormat]:
        try:
            self._parser.close()
        except ET.ParseError as e:
            raise ExtractionError(
                f"Failed to parse DASH manifest: {e}", error_code="dash.parse"
            ) from e
        self._drain()
        return list(self.formats.values())

    def _drain(self) -> None:
        for _event, element in self._parser.read_events():
            name = _local_name(element.tag)
            if name == "AdaptationSet":
                self._adaptation_mime = element.get("mimeType")
            elif name == "Representation":
                self._on_representation(element)

    def _on_representation(self, element: ET.Element) -> None:
        itag = int_or_none(element.get("id"))
        if itag is None:
            return
        fields = {
            "itag": itag,
            "url": self.manifest_url,
            "bitrate": int_or_none(element.get("bandwidth")),
            "mime_type": f'{self._adaptation_mime}; codecs="{element.get("codecs")}"',
        }
        if element.get("height"):
            fields.update(
                width=int_or_none(element.get("width")),
                height=int_or_none(element.get("height")),
                fps=_parse_frame_rate(element.get("frameRate")),
            )
        else:
            fields["audio_sample_rate"] = int_or_none(element.get("audioSamplingRate"))
        fmt = VideoFormat(**fields)
        self.formats[(fmt.itag, fmt.url)] = fmt


def parse_mpd(content: str | bytes, manifest_url: str) -> list[VideoFormat]:
    """Parse a complete DASH manifest body."""
    parser = DashManifestParser(manifest_url)
    parser.feed(content)
    return parser.close()


async def fetch_dash_formats(http: HTTPClient, url: str) -> dict[tuple[int, str], VideoFormat]:
    """Stream the manifest at *url* through the pull parser."""
    url = absolute_url(url)
    parser = DashManifestParser(url)
    async with http.stream(url) as response:
        async for chunk in response.aiter_bytes():
            parser.feed(chunk)
    formats = parser.close()
    logger.debug("DASH manifest yielded %d formats", len(formats))
    return {(f.itag, f.url): f for f in formats}
