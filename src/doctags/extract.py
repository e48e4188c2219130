"""Comment block extraction and tag parsing.

Source text is scanned one line at a time by an :class:`Extractor`. Once a
``/** ... */`` block (or a one-line ``/** text */``) is complete it is
split into a description and raw tag texts, and every tag text is run
through the configured parser pipeline.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

from doctags.parsers import PARSERS
from doctags.schema import Block, Line, RawTagText, TagNode, TagParseResult

LOGGER = logging.getLogger(__name__)

RE_COMMENT_START = re.compile(r"^\s*/\*\*\s*$")
RE_COMMENT_LINE = re.compile(r"^\s*\*(?:\s(\s*)|$)")
RE_COMMENT_END = re.compile(r"^\s*\*/\s*$")
RE_COMMENT_1LINE = re.compile(r"^\s*/\*\*\s*(.*)\s*\*/\s*$")
RE_TAG_HEADER = re.compile(r"^\s*@(\w+)")

TagParser = Callable[[str, Dict[str, Any]], Optional[TagParseResult]]


class InvalidInput(TypeError):
    """Raised when the parser is called with arguments it cannot work with."""


@dataclass
class ParseOptions:
    """Parser configuration.

    Attributes:
        trim: Strip surrounding whitespace from lines, tag sources and the
            block source, and drop the padding after interior ``*`` markers.
        dotted_names: Nest ``@tag name.sub`` under the ``name`` tag.
        parsers: Ordered tag parsers; see :mod:`doctags.parsers`.
    """
    trim: bool = True
    dotted_names: bool = False
    parsers: Sequence[TagParser] = PARSERS

    def __post_init__(self):
        if isinstance(self.parsers, (str, bytes)) or not isinstance(self.parsers, Iterable):
            raise InvalidInput("parsers must be a sequence of callables")
        self.parsers = tuple(self.parsers)
        for parser in self.parsers:
            if not callable(parser):
                raise InvalidInput(f"Parser {parser!r} is not callable")

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]] = None) -> "ParseOptions":
        """Merge a plain mapping of option values over the defaults."""
        values = dict(mapping or {})
        unknown = sorted(set(values) - {field.name for field in fields(cls)})
        if unknown:
            raise InvalidInput(f"Unknown parse options: {', '.join(unknown)}")
        return cls(**values)


Options = Union[ParseOptions, Mapping[str, Any], None]


def _coerce_options(opts: Options) -> ParseOptions:
    if isinstance(opts, ParseOptions):
        return opts
    if opts is None or isinstance(opts, Mapping):
        return ParseOptions.from_mapping(opts)
    raise InvalidInput(f"Options must be ParseOptions or a mapping, got {type(opts).__name__}")


def _parser_name(parser: TagParser) -> str:
    return getattr(parser, "__name__", None) or type(parser).__name__


def _copy_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy the record handed to a parser; list and dict values are copied one level deep."""
    return {
        key: list(value) if isinstance(value, list) else dict(value) if isinstance(value, dict) else value
        for key, value in data.items()
    }


def parse_tag(source: str, parsers: Sequence[TagParser] = PARSERS) -> Optional[TagNode]:
    """Run the parser pipeline over one tag's raw text.

    Each parser gets the unconsumed remainder of ``source`` and a copy of the
    data collected so far. Later parsers override earlier ones field by
    field; failures are collected under ``errors`` and do not stop the
    pipeline.

    Args:
        source: Raw tag text, starting with ``@``.
        parsers: Ordered tag parsers.

    Returns:
        The tag node, or None when ``source`` does not start with ``@``.

    Raises:
        InvalidInput: If ``source`` is not a string, or a parser returns
            something other than None or a ``(consumed, data)`` pair.
    """
    if not isinstance(source, str):
        raise InvalidInput(f"Tag source must be a string, got {type(source).__name__}")
    if not source.startswith("@"):
        return None

    remaining = source
    data: Dict[str, Any] = {}
    for parser in parsers:
        name = _parser_name(parser)
        prior = _copy_data(data)
        try:
            result = parser(remaining, prior)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug("Parser %s rejected %r: %s", name, source, exc)
            data["errors"] = data.get("errors", []) + [f"{name}: {exc}"]
            continue
        if not result:
            continue
        if not (isinstance(result, tuple) and len(result) == 2
                and isinstance(result[0], str) and isinstance(result[1], Mapping)):
            raise InvalidInput(f"Parser {name} must return None or a (consumed, data) pair, got {result!r}")
        consumed, contributed = result
        remaining = remaining[len(consumed):]
        contributed = dict(contributed)
        errors = contributed.pop("errors", None) or []
        data.update(contributed)
        if errors:
            data["errors"] = data.get("errors", []) + list(errors)

    data["optional"] = bool(data.get("optional"))
    for key in ("tag", "type", "name", "description"):
        data.setdefault(key, "")
    data.setdefault("errors", [])
    return data


def _find_tag(siblings: List[TagNode], tag: str, name: str) -> Optional[TagNode]:
    """Return the last sibling with the given keyword and name."""
    for candidate in reversed(siblings):
        if candidate.get("tag") == tag and candidate.get("name") == name:
            return candidate
    return None


def _fold_dotted(tags: List[TagNode], node: TagNode) -> None:
    """Attach ``node`` under the parents named by its dotted name.

    Missing parents are synthesized with the child's keyword and line.
    Only tags already collected for this block are searched, so a child
    listed before its parent gets a parent of its own.
    """
    *parents, leaf = node["name"].split(".")
    siblings = tags
    for part in parents:
        parent = _find_tag(siblings, node["tag"], part)
        if parent is None:
            parent = {
                "tag": node["tag"],
                "type": "",
                "name": part,
                "description": "",
                "optional": False,
                "line": node["line"],
                "source": "",
                "tags": [],
                "errors": [],
            }
            siblings.append(parent)
        siblings = parent.setdefault("tags", [])
    node["name"] = leaf
    siblings.append(node)


def parse_block(lines: Sequence[Line], opts: Options = None) -> Optional[Block]:
    """Turn the collected lines of one comment block into a Block.

    Lines before the first ``@tag`` line form the description; every tag
    line starts a new tag and swallows the non-tag lines after it.

    Returns:
        The block, or None when it has neither a description nor tags.
    """
    opts = _coerce_options(opts)
    if not lines:
        return None

    def trim(text: str) -> str:
        return text.strip() if opts.trim else text

    start = lines[0].number
    source = trim("\n".join(trim(line.text) for line in lines))

    groups: List[Dict[str, Any]] = [{"source": [], "line": start}]
    for line in lines:
        text = trim(line.text)
        if RE_TAG_HEADER.match(text):
            groups.append({"source": [text], "line": line.number})
        else:
            groups[-1]["source"].append(text)
    description, *raw_tags = [
        RawTagText(trim("\n".join(group["source"])), group["line"]) for group in groups
    ]

    if description.source == "" and not raw_tags:
        LOGGER.debug("Discarding empty comment block at line %d", start)
        return None

    tags: List[TagNode] = []
    for raw in raw_tags:
        node = parse_tag(raw.source, opts.parsers)
        if node is None:
            LOGGER.debug("Skipping tag text without @ at line %d: %r", raw.line, raw.source)
            continue
        node["line"] = raw.line
        node["source"] = raw.source
        node["tags"] = []
        if opts.dotted_names and "." in node["name"]:
            _fold_dotted(tags, node)
        else:
            tags.append(node)

    return {
        "line": start,
        "description": description.source,
        "source": source,
        "tags": tags,
    }


class Extractor:
    """Line-at-a-time comment block recognizer.

    Call the instance with each line of a source text in order; it returns a
    Block whenever a line completes one and None otherwise. A line that is
    not part of the comment syntax drops any partially collected block.

    Line numbers start at 0. A one-line ``/** ... */`` block is numbered with
    the current count and does not advance it, so every line after it is
    reported one lower than its physical index.
    """

    def __init__(self, opts: Options = None):
        self.opts = _coerce_options(opts)
        self._chunk: Optional[List[Line]] = None
        self._number = 0

    @property
    def collecting(self) -> bool:
        """True while a multi-line block is open."""
        return self._chunk is not None

    def __call__(self, line: str) -> Optional[Block]:
        match = RE_COMMENT_1LINE.match(line)
        if match:
            return parse_block([Line(match.group(1), self._number)], self.opts)

        self._number += 1
        number = self._number - 1

        if RE_COMMENT_START.match(line):
            self._chunk = [Line("", number)]
            return None

        if self._chunk is None:
            return None

        match = RE_COMMENT_LINE.match(line)
        if match:
            content = line[match.end():]
            if not self.opts.trim:
                content = (match.group(1) or "") + content
            self._chunk.append(Line(content, number))
            return None

        chunk, self._chunk = self._chunk, None
        if RE_COMMENT_END.match(line):
            chunk.append(Line("", number))
            return parse_block(chunk, self.opts)

        LOGGER.debug("Comment block at line %d aborted by line %d", chunk[0].number, number)
        return None


def mkextract(opts: Options = None) -> Extractor:
    """Return a fresh extractor; feed it lines one at a time."""
    return Extractor(opts)


def parse_lines(lines: Iterable[str], opts: Options = None) -> Iterator[Block]:
    """Yield blocks from an iterable of lines (a trailing newline on each is ignored)."""
    extract = mkextract(opts)
    for line in lines:
        if line.endswith("\n"):
            line = line[:-1]
        block = extract(line)
        if block:
            yield block


def parse(source: str, opts: Options = None) -> List[Block]:
    """Parse every doc comment block in ``source``, in document order.

    Raises:
        InvalidInput: If ``source`` is not a string or ``opts`` is invalid.
    """
    if not isinstance(source, str):
        raise InvalidInput(f"Source must be a string, got {type(source).__name__}")
    return list(parse_lines(source.split("\n"), opts))
