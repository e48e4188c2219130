import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import click
from jsonschema import ValidationError

from doctags.extract import Options, ParseOptions, parse_lines
from doctags.schema import Block, TagNode, validate_blocks

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def parse_file(path: Union[str, Path], opts: Options = None) -> List[Block]:
    """Read a UTF-8 source file and return its doc comment blocks."""
    with open(path, "r", encoding="utf-8") as f_handle:
        return list(parse_lines(f_handle, opts))


def _collect_tag_errors(tags: List[TagNode], found: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Walk a tag tree and collect every node that recorded parser errors."""
    for node in tags:
        if node.get("errors"):
            found.append({"line": node.get("line"), "tag": node.get("tag"), "errors": node["errors"]})
        _collect_tag_errors(node.get("tags") or [], found)
    return found


def _fail(error: str, hint: str, **extra: Any) -> None:
    payload: Dict[str, Any] = {"error": error, "hint": hint}
    payload.update(extra)
    click.echo(json.dumps(payload))
    sys.exit(2)


@click.group()
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default="WARNING",
              show_default=True, help="Logging level for diagnostics written to stderr")
def cli(log_level):
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option("--path", "path", type=click.Path(dir_okay=False), help="Source file to scan (stdin when omitted)")
@click.option("--trim/--no-trim", default=True, show_default=True, help="Trim whitespace around comment content")
@click.option("--dotted-names", is_flag=True, help="Nest `@tag a.b` under the `a` tag")
@click.option("--strict", is_flag=True, help="Exit with code 2 when any tag recorded parser errors")
@click.option("--indent", type=int, default=None, help="Indent the JSON output")
def parse(path, trim, dotted_names, strict, indent):
    """Extract doc comment blocks and print them as a JSON list.

    Emits a JSON error object and exits with code 2 on failure.
    """
    opts = ParseOptions(trim=trim, dotted_names=dotted_names)

    if path:
        try:
            blocks = parse_file(path, opts)
        except (OSError, UnicodeDecodeError) as exc:
            _fail("read_failed", str(exc), path=path)
    else:
        blocks = list(parse_lines(sys.stdin, opts))
    LOGGER.info("Extracted %d block(s) from %s", len(blocks), path or "<stdin>")

    try:
        validate_blocks(blocks)
    except ValidationError as exc:
        _fail("schema_invalid", exc.message)

    if strict:
        failures: List[Dict[str, Any]] = []
        for block in blocks:
            _collect_tag_errors(block["tags"], failures)
        if failures:
            _fail("tag_errors", f"{len(failures)} tag(s) could not be parsed", tags=failures)

    click.echo(json.dumps(blocks, indent=indent))


@cli.command()
@click.option("--path", "path", required=True, type=click.Path(dir_okay=False),
              help="JSON file holding a block list produced by `doctags parse`")
def validate(path):
    """Check a JSON block list against the block schema."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        _fail("read_failed", str(exc), path=path)
    except json.JSONDecodeError as exc:
        _fail("schema_invalid", f"Invalid JSON: {exc}", path=path)

    try:
        validate_blocks(payload)
    except ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path)
        _fail("schema_invalid", exc.message, path=path, at=location)

    click.echo(json.dumps({"ok": True, "blocks": len(payload)}))


def cli_entry(argv: Optional[List[str]] = None):
    cli(args=argv, prog_name="doctags")

if __name__ == "__main__":
    cli_entry()
