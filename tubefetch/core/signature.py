"""
Player-script lookup and per-format URL resolution.

A format either carries a direct ``url`` or a ``signatureCipher`` blob
(url, scrambled signature ``s`` and target parameter ``sp``). Resolution
replays the player's decipher tokens on ``s``, its n-transform tokens on
the ``n`` parameter, and sets ``ratebypass=yes``. A format whose
signature cannot be deciphered is dropped rather than returned with an
unusable URL.
"""

import logging
from dataclasses import dataclass
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit, urlunsplit

from ..exceptions import CipherError
from ..models.response import VideoFormat
from .cache import TTLCache
from .cipher import CipherToken, apply_tokens, extract_tokens
from .http_client import HTTPClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerScript:
    """A player script URL and the token sequences extracted from it."""

    url: str
    decipher_tokens: list[CipherToken] | None
    n_tokens: list[CipherToken] | None

    @property
    def has_tokens(self) -> bool:
        return self.decipher_tokens is not None or self.n_tokens is not None


async def get_player_script(http: HTTPClient, url: str, cache: TTLCache) -> PlayerScript:
    """Fetch and tokenize the player script at *url*, memoized per URL."""

    async def fetch() -> PlayerScript:
        body = await http.get_text(url, retries=0)
        decipher_tokens, n_tokens = extract_tokens(body)
        logger.info(
            "Extracted player tokens from %s (decipher=%s, n=%s)",
            url,
            " ".join(map(str, decipher_tokens)) if decipher_tokens else None,
            " ".join(map(str, n_tokens)) if n_tokens else None,
        )
        return PlayerScript(url, decipher_tokens, n_tokens)

    return await cache.get_or_set(url, fetch)


def needs_decipher(fmt: VideoFormat) -> bool:
    return bool(fmt.signature_cipher or fmt.cipher)


def set_download_url(
    fmt: VideoFormat,
    decipher_tokens: list[CipherToken] | None,
    n_tokens: list[CipherToken] | None,
) -> VideoFormat | None:
    """Return *fmt* with a directly fetchable URL, or None if it is unusable."""
    signature = None
    param = "signature"
    blob = fmt.signature_cipher or fmt.cipher
    if blob:
        args = parse_qs(blob)
        url = args.get("url", [None])[0]
        signature = args.get("s", [None])[0]
        param = args.get("sp", ["signature"])[0]
    else:
        url = fmt.url

    if not url:
        logger.debug("Dropping itag %s: no URL", fmt.itag)
        return None

    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))

    if signature:
        if not decipher_tokens:
            logger.debug("Dropping itag %s: signature present but no decipher tokens", fmt.itag)
            return None
        query[param] = apply_tokens(decipher_tokens, signature)

    if query.get("n") and n_tokens:
        query["n"] = apply_tokens(n_tokens, query["n"])

    query["ratebypass"] = "yes"
    return fmt.model_copy(
        update={
            "url": urlunsplit(parts._replace(query=urlencode(query))),
            "signature_cipher": None,
            "cipher": None,
        }
    )


async def decipher_formats(
    http: HTTPClient,
    formats: list[VideoFormat],
    player_url: str | None,
    cache: TTLCache,
) -> dict[tuple[int, str], VideoFormat]:
    """
    Resolve every format's URL using the player script at *player_url*.

    Returns the usable formats keyed by ``(itag, url)``. Raises CipherError
    when a format needs deciphering and no player script or no cipher
    function is available.
    """
    required = any(needs_decipher(f) for f in formats)
    decipher_tokens = n_tokens = None

    if player_url:
        script = await get_player_script(http, player_url, cache)
        if required and not script.has_tokens:
            raise CipherError(
                "Could not extract cipher functions from player script",
                error_code="cipher.not_found",
            )
        decipher_tokens, n_tokens = script.decipher_tokens, script.n_tokens
    elif required:
        raise CipherError("Unable to find html5player file", error_code="cipher.no_player")
    else:
        logger.warning("No player script URL; leaving n parameters untransformed")

    resolved: dict[tuple[int, str], VideoFormat] = {}
    for fmt in formats:
        result = set_download_url(fmt, decipher_tokens, n_tokens)
        if result is not None:
            resolved[(result.itag, result.url)] = result
    return resolved
