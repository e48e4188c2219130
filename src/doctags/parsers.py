"""Built-in tag parsers.

Each parser takes ``(source, data)``: the part of the tag text not yet
consumed and a copy of what earlier parsers produced. It returns ``None``
when it does not apply, a :class:`TagParseResult` naming the consumed
prefix and the fields it contributes, or raises :class:`TagParseError`.

The default order matters: ``@tag {type} name description``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from doctags.schema import TagParseResult

RE_TAG = re.compile(r"^\s*@(\S+)")
RE_DESCRIPTION = re.compile(r"^\s+([\s\S]+)?")
RE_QUOTED = re.compile(r"""^(["'])(.+)\1$""")


class TagParseError(ValueError):
    """Raised by a parser when the tag text is malformed for its grammar."""


def _skip_blanks(source: str) -> int:
    """Return the index of the first character that is not a space or tab."""
    pos = 0
    while pos < len(source) and source[pos] in " \t":
        pos += 1
    return pos


def parse_tag(source: str, data: Dict[str, Any]) -> Optional[TagParseResult]:
    """Read the `@keyword` at the front of the tag."""
    match = RE_TAG.match(source)
    if not match:
        raise TagParseError("Invalid `@tag`, missing @ symbol")
    return TagParseResult(match.group(0), {"tag": match.group(1)})


def parse_type(source: str, data: Dict[str, Any]) -> Optional[TagParseResult]:
    """Read an optional `{type}` expression, allowing nested braces."""
    if data.get("errors"):
        return None
    pos = _skip_blanks(source)
    if not source.startswith("{", pos):
        return None

    start = pos
    depth = 0
    while pos < len(source):
        char = source[pos]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        pos += 1
        if depth == 0:
            break
    if depth != 0:
        raise TagParseError("Invalid `{type}`, unpaired curlies")
    return TagParseResult(source[:pos], {"type": source[start + 1:pos - 1]})


def parse_name(source: str, data: Dict[str, Any]) -> Optional[TagParseResult]:
    """Read the tag name on the header line.

    ``[name]`` marks the tag optional and ``[name=value]`` also records a
    default, with one pair of surrounding quotes removed from the value.
    """
    if data.get("errors"):
        return None
    pos = _skip_blanks(source)
    if pos >= len(source) or source[pos] in "\r\n":
        return None

    start = pos
    depth = 0
    while pos < len(source):
        char = source[pos]
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        pos += 1
        if depth == 0 and pos < len(source) and source[pos].isspace():
            break
    if depth != 0:
        raise TagParseError("Invalid `name`, unpaired brackets")

    name = source[start:pos]
    result: Dict[str, Any] = {"name": name, "optional": False}
    if len(name) > 1 and name[0] == "[" and name[-1] == "]":
        result["optional"] = True
        name = name[1:-1]
        if "=" in name:
            name, default = name.split("=", 1)
            result["default"] = RE_QUOTED.sub(r"\2", default)
        result["name"] = name
    return TagParseResult(source[:pos], result)


def parse_description(source: str, data: Dict[str, Any]) -> Optional[TagParseResult]:
    """Take whatever follows as the free-text description."""
    if data.get("errors"):
        return None
    match = RE_DESCRIPTION.match(source)
    if not match:
        return None
    return TagParseResult(match.group(0), {"description": match.group(1) or ""})


PARSERS = (
    parse_tag,
    parse_type,
    parse_name,
    parse_description,
)
