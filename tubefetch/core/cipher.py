"""
Signature and n-parameter cipher extraction and replay.

The player script ships a helper object with four tiny array operations
(reverse, swap head with index, slice from index, splice off the head)
and functions that call those operations in sequence. Helper and function
names are obfuscated and change per release but the code shapes do not,
so extraction matches shapes and reduces each transform to a list of
CipherToken values. ``apply_tokens`` replays such a list with a fixed
interpreter; no player code is ever evaluated.

Shape patterns ported from ytdl-core's sig.js action extraction.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .text import between

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    REVERSE = "r"
    SWAP = "w"
    SLICE = "s"
    SPLICE = "p"


@dataclass(frozen=True)
class CipherToken:
    """One replayable operation; *position* is unused for REVERSE."""

    kind: TokenKind
    position: int = 0

    def __str__(self) -> str:
        if self.kind is TokenKind.REVERSE:
            return self.kind.value
        return f"{self.kind.value}{self.position}"


REVERSE = CipherToken(TokenKind.REVERSE)


def parse_tokens(compact: str) -> list[CipherToken]:
    """Parse a compact sequence such as ``"w3 r s2 p1"``."""
    tokens = []
    for part in compact.split():
        kind = TokenKind(part[0])
        tokens.append(CipherToken(kind, int(part[1:] or 0)))
    return tokens


def apply_tokens(tokens: list[CipherToken], value: str) -> str:
    """Replay *tokens* in order against *value* and return the result."""
    chars = list(value)
    for token in tokens:
        if token.kind is TokenKind.REVERSE:
            chars.reverse()
        elif token.kind is TokenKind.SWAP:
            if chars:
                pos = token.position % len(chars)
                chars[0], chars[pos] = chars[pos], chars[0]
        elif token.kind is TokenKind.SLICE:
            chars = chars[token.position :]
        elif token.kind is TokenKind.SPLICE:
            del chars[: token.position]
    return "".join(chars)


# ----------------------------------------------------------------------
# Shape patterns
# ----------------------------------------------------------------------

_VAR = r"[a-zA-Z_$][a-zA-Z_0-9$]*"
_QUOTED = r"""'[^'\\]*(?:\\.[^'\\]*)*'|"[^"\\]*(?:\\.[^"\\]*)*\""""
_KEY = rf"(?:{_VAR}|{_QUOTED})"
_PROP = rf"(?:\.{_VAR}|\[(?:{_QUOTED})\])"

# Classification order matters: a key is claimed by the first shape it fits.
_SHAPES: list[tuple[TokenKind, str]] = [
    (TokenKind.REVERSE, r":function\(a(?:,b)?\)\{(?:return )?a\.reverse\(\)\}"),
    (TokenKind.SLICE, r":function\(a,b\)\{return a\.slice\(b\)\}"),
    (TokenKind.SPLICE, r":function\(a,b\)\{a\.splice\(0,b\)\}"),
    (
        TokenKind.SWAP,
        r":function\(a,b\)\{var c=a\[0\];a\[0\]=a\[b(?:%a\.length)?\];"
        r"a\[b(?:%a\.length)?\]=c(?:;return a)?\}",
    ),
]

_HELPER_OBJ_RE = re.compile(
    rf"var ({_VAR})=\{{((?:(?:"
    + "|".join(rf"{_KEY}{shape}" for _, shape in _SHAPES)
    + r"),?\r?\n?)+)\};"
)

_KEY_SHAPE_RES = [
    (kind, re.compile(rf"(?:^|,)\r?\n?({_KEY}){shape}", re.MULTILINE)) for kind, shape in _SHAPES
]

_DECIPHER_FUNC_RE = re.compile(
    rf"function(?: {_VAR})?\(a\)\{{"
    r'a=a\.split\(""\);\s*'
    rf"((?:(?:a=)?{_VAR}{_PROP}\(a(?:,\d+)?\);)+)"
    r'return a\.join\(""\)'
    r"\}"
)

_N_FUNC_SHAPE_RE = re.compile(rf"(?:^|[;,\s])({_VAR})=function\(a\)\{{var b=a\.split\(")

_N_CALLER_LEFT = '&&(b=a.get("n"))&&(b='


def _unquote(key: str) -> str:
    if key[:1] in ("'", '"'):
        return key[1:-1]
    return key


def _classify_keys(obj_body: str) -> dict[str, TokenKind]:
    """Map each helper key to the operation its code shape implements."""
    keys: dict[str, TokenKind] = {}
    for kind, pattern in _KEY_SHAPE_RES:
        for match in pattern.finditer(obj_body):
            key = _unquote(match.group(1))
            if key not in keys:
                keys[key] = kind
    return keys


def find_helper_objects(body: str) -> dict[str, dict[str, TokenKind]]:
    """Find every helper object in *body*, keyed by object name."""
    helpers = {}
    for match in _HELPER_OBJ_RE.finditer(body):
        keys = _classify_keys(match.group(2))
        if keys:
            helpers[match.group(1)] = keys
    return helpers


def tokenize_calls(
    func_body: str, helpers: dict[str, dict[str, TokenKind]]
) -> list[CipherToken]:
    """
    Turn the helper calls inside *func_body* into tokens, in call order.

    A call to a helper key with no recognized shape makes the whole
    sequence unusable, so an empty list is returned.
    """
    if not helpers:
        return []
    names = "|".join(re.escape(name) for name in helpers)
    call_re = re.compile(
        rf"(?:{_VAR}=)?(?<![\w$.])({names})(?:\.({_VAR})|\[({_QUOTED})\])"
        rf"\({_VAR}(?:,(\d+))?\)"
    )
    tokens = []
    for match in call_re.finditer(func_body):
        obj, key = match.group(1), match.group(2) or _unquote(match.group(3))
        kind = helpers[obj].get(key)
        if kind is None:
            logger.debug("Unrecognized helper call %s", match.group(0))
            return []
        position = int(match.group(4) or 0)
        tokens.append(REVERSE if kind is TokenKind.REVERSE else CipherToken(kind, position))
    return tokens


def extract_decipher_tokens(
    body: str, helpers: dict[str, dict[str, TokenKind]] | None = None
) -> list[CipherToken] | None:
    """Extract the signature decipher sequence, or None if not found."""
    if helpers is None:
        helpers = find_helper_objects(body)
    if not helpers:
        logger.debug("No cipher helper object found in player script")
        return None
    for match in _DECIPHER_FUNC_RE.finditer(body):
        tokens = tokenize_calls(match.group(1), helpers)
        if tokens:
            return tokens
    logger.debug("No signature decipher function found in player script")
    return None


def _find_n_function_name(body: str) -> str | None:
    name = between(body, _N_CALLER_LEFT, "(b)")
    if name and "[" in name:
        # b=Xy[0](b) refers to an array literal holding the function
        name = between(body, f"{name.split('[')[0]}=[", "]")
    if name and re.fullmatch(_VAR, name):
        return name
    match = _N_FUNC_SHAPE_RE.search(body)
    return match.group(1) if match else None


def extract_n_tokens(
    body: str, helpers: dict[str, dict[str, TokenKind]] | None = None
) -> list[CipherToken] | None:
    """Extract the n-parameter transform sequence, or None if not found."""
    if helpers is None:
        helpers = find_helper_objects(body)
    name = _find_n_function_name(body)
    if not name or not helpers:
        logger.debug("No n-parameter transform function found in player script")
        return None

    match = re.search(rf"(?<![\w$]){re.escape(name)}=function\(a\)", body)
    if not match:
        return None
    start = match.start()
    end = body.find('.join("")', start)
    if end < 0:
        return None

    tokens = tokenize_calls(body[start:end], helpers)
    return tokens or None


def extract_tokens(body: str) -> tuple[list[CipherToken] | None, list[CipherToken] | None]:
    """Return ``(decipher_tokens, n_tokens)`` for a player script body."""
    helpers = find_helper_objects(body)
    return extract_decipher_tokens(body, helpers), extract_n_tokens(body, helpers)
