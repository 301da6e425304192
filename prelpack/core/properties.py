"""Properties-file parsing and image-reference extraction.

Implements the ``java.util.Properties`` text format: ``#``/``!``
comments, ``=``/``:``/whitespace separators, backslash line continuation
and the usual escapes (including ``\\uXXXX``).  The payload must be
UTF-8.
"""

from __future__ import annotations

import logging
import re

from prelpack.core.reference import explicit_reference
from prelpack.errors import PropertiesParseError
from prelpack.models.images import ImageRef

logger = logging.getLogger(__name__)

_WHITESPACE = " \t\f"
_SEPARATORS = "=:"
_SIMPLE_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_NATURAL_LINE_RE = re.compile(r"\r\n|\r|\n")


def _ends_with_continuation(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _logical_lines(text: str) -> list[tuple[int, str]]:
    """Join continued natural lines; drop blanks and comments.

    Returns ``(line_number, logical_line)`` pairs, numbered from 1 by the
    first natural line of each logical line.
    """
    natural = _NATURAL_LINE_RE.split(text)
    out: list[tuple[int, str]] = []
    i = 0
    while i < len(natural):
        start = i + 1
        line = natural[i].lstrip(_WHITESPACE)
        i += 1
        if not line or line[0] in "#!":
            continue
        while _ends_with_continuation(line):
            line = line[:-1]
            if i >= len(natural):
                break
            line += natural[i].lstrip(_WHITESPACE)
            i += 1
        out.append((start, line))
    return out


def _unescape(raw: str, line_number: int) -> str:
    chars: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch != "\\":
            chars.append(ch)
            i += 1
            continue
        i += 1
        if i >= len(raw):
            break
        esc = raw[i]
        if esc == "u":
            hex_digits = raw[i + 1 : i + 5]
            if len(hex_digits) != 4 or not all(
                c in "0123456789abcdefABCDEF" for c in hex_digits
            ):
                raise PropertiesParseError(
                    f"Malformed \\uXXXX escape on line {line_number}"
                )
            chars.append(chr(int(hex_digits, 16)))
            i += 5
            continue
        chars.append(_SIMPLE_ESCAPES.get(esc, esc))
        i += 1
    return "".join(chars)


def _split_key_value(line: str) -> tuple[str, str]:
    """Split a logical line at the first unescaped separator."""
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch in _SEPARATORS or ch in _WHITESPACE:
            break
        i += 1
    key = line[:i]
    rest = line[i:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def load(payload: bytes) -> dict[str, str]:
    """Parse a properties payload into an ordered key/value mapping.

    Later duplicates of a key override earlier ones.

    Raises
    ------
    PropertiesParseError
        If the payload is not UTF-8 or contains a malformed escape.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PropertiesParseError(
            f"Properties file is not valid UTF-8: {exc}"
        ) from exc
    text = text.removeprefix("\ufeff")

    props: dict[str, str] = {}
    for line_number, line in _logical_lines(text):
        raw_key, raw_value = _split_key_value(line)
        props[_unescape(raw_key, line_number)] = _unescape(raw_value, line_number)
    return props


def images(payload: bytes) -> set[ImageRef]:
    """Extract the set of image references named by a properties payload.

    Only values that are explicit references (tag, digest or registry
    domain present) are treated as images.
    """
    refs: set[ImageRef] = set()
    for key, value in load(payload).items():
        ref = explicit_reference(value)
        if ref is None:
            continue
        logger.debug("Property %s references image %s", key, ref)
        refs.add(ref)
    return refs
