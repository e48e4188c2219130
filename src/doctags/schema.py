"""Record shapes produced by the doc comment parser and their JSON schema."""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, TypedDict

from jsonschema import validate as jsonschema_validate


class Line(NamedTuple):
    """A physical source line as collected inside a comment block."""
    text: str
    number: int


class RawTagText(NamedTuple):
    """One tag's header line merged with its continuation lines."""
    source: str
    line: int


class TagNode(TypedDict, total=False):
    """One parsed `@tag` annotation, possibly holding nested dotted children."""
    tag: str
    type: str
    name: str
    description: str
    optional: bool
    default: str              # only when a parser supplies it ("[name=value]")
    line: int                 # 0-based, see Extractor for numbering rules
    source: str               # raw tag text, continuation lines joined by "\n"
    tags: List["TagNode"]
    errors: List[str]         # "<parser>: <message>" per failing parser


class Block(TypedDict):
    """One recognized comment block."""
    line: int
    description: str
    source: str
    tags: List[TagNode]


class TagParseResult(NamedTuple):
    """Value returned by a tag parser that consumed part of the source."""
    source: str               # consumed prefix of the remaining source
    data: Dict[str, Any]


TAG_NODE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": [
        "tag", "type", "name", "description", "optional",
        "line", "source", "tags", "errors",
    ],
    "properties": {
        "tag": {"type": "string"},
        "type": {"type": "string"},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "optional": {"type": "boolean"},
        "line": {"type": "integer", "minimum": 0},
        "source": {"type": "string"},
        "tags": {"type": "array", "items": {"$ref": "#/definitions/tag"}},
        "errors": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": True,
}

BLOCKS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "definitions": {"tag": TAG_NODE_SCHEMA},
    "type": "array",
    "items": {
        "type": "object",
        "required": ["line", "description", "source", "tags"],
        "properties": {
            "line": {"type": "integer", "minimum": 0},
            "description": {"type": "string"},
            "source": {"type": "string"},
            "tags": {"type": "array", "items": {"$ref": "#/definitions/tag"}},
        },
        "additionalProperties": False,
    },
}


def validate_blocks(blocks: List[Block]) -> None:
    """Validate a block list (or its JSON-decoded form) against BLOCKS_SCHEMA.

    Raises:
        jsonschema.ValidationError: When a block or tag node is malformed.
    """
    jsonschema_validate(instance=blocks, schema=BLOCKS_SCHEMA)
