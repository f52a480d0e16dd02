"""Parser for Valve KeyValues text (``.acf`` / ``.vdf`` files).

Format::

    "AppState"
    {
        "appid"      "220"
        "StateFlags" "4"
        "UserConfig"
        {
            "language" "english"
        }
    }

Keys are case-insensitive and are returned lower-cased. Values are either
strings or nested dicts. Inside quoted strings only ``\\"`` is unescaped;
every other backslash sequence is kept verbatim (``D:\\\\Games`` stays
doubled, callers normalise paths themselves).

Malformed input, including absurdly deep nesting, yields ``None`` instead
of raising.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Union

KeyValues = dict[str, Union[str, "KeyValues"]]

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<comment>//[^\n]*)
    | (?P<open>\{)
    | (?P<close>\})
    | (?P<quoted>"(?:[^"\\]|\\.)*")
    | (?P<bare>[^\s{}"]+)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


class _ParseError(Exception):
    pass


def _unquote(token: str) -> str:
    body = token[1:-1]
    return _ESCAPE_RE.sub(lambda m: '"' if m.group(1) == '"' else m.group(0), body)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            # Only an unterminated quoted string can fail to match.
            raise _ParseError(f"unterminated string at offset {pos}")
        kind = m.lastgroup
        value = m.group()
        pos = m.end()
        if kind in ("ws", "comment"):
            continue
        if kind == "quoted":
            tokens.append(("str", _unquote(value)))
        elif kind == "bare":
            # Platform conditionals such as [$WIN32] are dropped.
            if value.startswith("[") and value.endswith("]"):
                continue
            tokens.append(("str", value))
        else:
            tokens.append((kind, value))
    return tokens


def _parse_object(tokens: list[tuple[str, str]], pos: int) -> tuple[KeyValues, int]:
    """Parse pairs up to the matching ``}``; *pos* is just past the ``{``."""
    result: KeyValues = {}
    while pos < len(tokens):
        kind, value = tokens[pos]
        if kind == "close":
            return result, pos + 1
        if kind != "str":
            raise _ParseError(f"expected key, got {value!r}")
        key = value.lower()
        pos += 1
        if pos >= len(tokens):
            raise _ParseError(f"key {key!r} has no value")
        kind, value = tokens[pos]
        if kind == "open":
            result[key], pos = _parse_object(tokens, pos + 1)
        elif kind == "str":
            result[key] = value
            pos += 1
        else:
            raise _ParseError(f"key {key!r} has no value")
    raise _ParseError("unterminated object")


def loads(text: str) -> KeyValues | None:
    """Parse a KeyValues document holding exactly one top-level object.

    Returns ``{"<root key>": {...}}`` or ``None`` when the text is not
    well-formed.
    """
    try:
        tokens = _tokenize(text.lstrip("\ufeff"))
        if len(tokens) < 2 or tokens[0][0] != "str" or tokens[1][0] != "open":
            return None
        body, end = _parse_object(tokens, 2)
        if end != len(tokens):
            return None
        return {tokens[0][1].lower(): body}
    except (_ParseError, RecursionError):
        # Nesting deeper than the interpreter stack counts as malformed.
        return None


def load(path: Path) -> KeyValues | None:
    """Read and parse *path*; unreadable files count as malformed."""
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return loads(text)


def get_str(node: KeyValues | None, key: str) -> str | None:
    """Fetch a string value by case-insensitive key, ignoring nested maps."""
    if node is None:
        return None
    value = node.get(key.lower())
    return value if isinstance(value, str) else None


def get_map(node: KeyValues | None, key: str) -> KeyValues | None:
    """Fetch a nested map by case-insensitive key."""
    if node is None:
        return None
    value = node.get(key.lower())
    return value if isinstance(value, dict) else None
