"""Extract `@tag` metadata from `/** ... */` documentation comments."""

from doctags.extract import (
    Extractor,
    InvalidInput,
    ParseOptions,
    mkextract,
    parse,
    parse_block,
    parse_lines,
    parse_tag,
)
from doctags.parsers import PARSERS, TagParseError
from doctags.schema import BLOCKS_SCHEMA, Block, Line, TagNode, TagParseResult, validate_blocks

__all__ = [
    "BLOCKS_SCHEMA",
    "Block",
    "Extractor",
    "InvalidInput",
    "Line",
    "PARSERS",
    "ParseOptions",
    "TagNode",
    "TagParseError",
    "TagParseResult",
    "mkextract",
    "parse",
    "parse_block",
    "parse_lines",
    "parse_tag",
    "validate_blocks",
]
