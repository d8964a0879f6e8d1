"""
General utility functions used across the extractors.
Partly ported from yt-dlp's utils.py.
"""

import ipaddress
import random
import re
from typing import Any
from urllib.parse import urljoin

BASE_URL = "https://www.youtube.com/watch?v="


def traverse_obj(obj: Any, *paths: Any, default: Any = None) -> Any:
    """
    Traverse nested dicts/lists safely.
    Ported from yt-dlp's traverse_obj utility.

    Usage:
        traverse_obj(data, 'key1', 'key2', 'key3')
        traverse_obj(data, ('key1', 'key2'), ('alt_key1', 'alt_key2'))
    """
    for path in paths:
        if isinstance(path, (list, tuple)):
            result = obj
            for key in path:
                if result is None:
                    break
                if isinstance(result, dict):
                    result = result.get(key)
                elif isinstance(result, (list, tuple)):
                    try:
                        result = result[key]
                    except (IndexError, TypeError):
                        result = None
                else:
                    result = None
            if result is not None:
                return result
        else:
            if isinstance(obj, dict) and obj.get(path) is not None:
                return obj[path]
    return default


def int_or_none(v: Any, scale: int = 1) -> int | None:
    """Convert value to int or return None."""
    if v is None:
        return None
    try:
        return int(v) // scale
    except (ValueError, TypeError):
        return None


def float_or_none(v: Any, scale: float = 1.0) -> float | None:
    """Convert value to float or return None."""
    if v is None:
        return None
    try:
        return float(v) / scale
    except (ValueError, TypeError):
        return None


def leading_int(v: Any) -> int:
    """parseInt-style conversion: '1080p60' -> 1080, anything else -> 0."""
    if isinstance(v, int):
        return v
    match = re.match(r"\s*(-?\d+)", str(v or ""))
    return int(match.group(1)) if match else 0


def absolute_url(url: str, base: str = BASE_URL) -> str:
    """Resolve a possibly relative or protocol-relative URL."""
    return urljoin(base, url)


def get_text(obj: Any) -> str | None:
    """Read the text of a renderer text node (``runs`` or ``simpleText``)."""
    if not obj:
        return None
    if obj.get("runs"):
        return obj["runs"][0].get("text")
    return obj.get("simpleText")


def parse_timestamp(value: str) -> int | None:
    """Parse '1:02:03' / '4:13' / '59' into seconds."""
    if not value:
        return None
    parts = value.strip().split(":")
    seconds = 0
    for part in parts:
        if not part.isdigit():
            return None
        seconds = seconds * 60 + int(part)
    return seconds


# The regex only accepts a subset of all IPv6 addresses, in CIDR notation.
_IPV6_RE = re.compile(
    r"^(([0-9a-f]{1,4}:)(:[0-9a-f]{1,4}){1,6}|([0-9a-f]{1,4}:){1,2}(:[0-9a-f]{1,4}){1,5}"
    r"|([0-9a-f]{1,4}:){1,3}(:[0-9a-f]{1,4}){1,4}|([0-9a-f]{1,4}:){1,4}(:[0-9a-f]{1,4}){1,3}"
    r"|([0-9a-f]{1,4}:){1,5}(:[0-9a-f]{1,4}){1,2}|([0-9a-f]{1,4}:){1,6}(:[0-9a-f]{1,4})"
    r"|([0-9a-f]{1,4}:){1,7}(([0-9a-f]{1,4})|:))/(1[0-1]\d|12[0-8]|\d{1,2})$",
    re.IGNORECASE,
)


def is_ipv6(block: str) -> bool:
    """Quick check for an IPv6 block in CIDR notation."""
    return bool(_IPV6_RE.match(block or ""))


def get_random_ipv6(block: str) -> str:
    """Pick a random address inside an IPv6 CIDR block (prefix 24..128)."""
    if not is_ipv6(block):
        raise ValueError("Invalid IPv6 format")
    network = ipaddress.IPv6Network(block, strict=False)
    if network.prefixlen < 24:
        raise ValueError("Invalid IPv6 subnet")
    return str(network[random.getrandbits(128 - network.prefixlen)])
