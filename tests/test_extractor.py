"""
Tests for comment block recognition.

Covers:
1. Block delimiting (start, interior, end, one-liners)
2. Aborted and empty blocks
3. Line numbering, including the one-liner counter quirk
4. The trim option
5. Streaming and per-call state isolation
"""
import pytest

from doctags.extract import Extractor, InvalidInput, ParseOptions, mkextract, parse, parse_lines

ADD_SOURCE = "\n".join([
    "/**",
    " * Adds two numbers.",
    " * @param {number} a first operand",
    " * @param {number} b second operand",
    " *   continued here",
    " * @returns {number} the sum",
    " */",
    "function add(a, b) {}",
])


class TestBlockRecognition:
    """Test which lines produce blocks."""

    def test_no_comments_yields_nothing(self):
        """Plain code without doc comments produces no blocks."""
        assert parse("var a = 1;\n/* plain comment */\nfunction f() {}") == []

    def test_empty_text(self):
        assert parse("") == []

    def test_one_liner(self):
        """A shorthand one-line comment is a block with only a description."""
        blocks = parse("/** Just a description */")
        assert blocks == [{
            "line": 0,
            "description": "Just a description",
            "source": "Just a description",
            "tags": [],
        }]

    def test_one_liner_with_tag(self):
        blocks = parse("/** @type {string} */")
        assert len(blocks) == 1
        assert blocks[0]["description"] == ""
        assert blocks[0]["tags"][0]["tag"] == "type"
        assert blocks[0]["tags"][0]["type"] == "string"

    def test_empty_one_liner_dropped(self):
        assert parse("/** */") == []

    def test_whitespace_only_block_dropped(self):
        """A block with no description and no tags yields nothing."""
        source = "\n".join(["/**", " *", " *   ", " */"])
        assert parse(source) == []

    def test_multiline_block(self):
        blocks = parse(ADD_SOURCE)
        assert len(blocks) == 1
        block = blocks[0]
        assert block["line"] == 0
        assert block["description"] == "Adds two numbers."
        assert [tag["tag"] for tag in block["tags"]] == ["param", "param", "returns"]
        assert block["source"] == "\n".join([
            "Adds two numbers.",
            "@param {number} a first operand",
            "@param {number} b second operand",
            "continued here",
            "@returns {number} the sum",
        ])

    def test_tag_continuation_lines_are_merged(self):
        tag = parse(ADD_SOURCE)[0]["tags"][1]
        assert tag["source"] == "@param {number} b second operand\ncontinued here"
        assert tag["name"] == "b"
        assert tag["description"] == "second operand\ncontinued here"

    def test_blocks_in_document_order(self):
        source = "\n".join([
            "/** first */",
            "code();",
            "/**",
            " * second",
            " */",
            "/** third */",
        ])
        assert [block["description"] for block in parse(source)] == ["first", "second", "third"]

    def test_non_comment_line_aborts_block(self):
        """An interrupted block is discarded without surfacing an error."""
        source = "\n".join([
            "/**",
            " * abandoned",
            "const x = 1;",
            " * not collected",
            " */",
            "/** kept */",
        ])
        blocks = parse(source)
        assert [block["description"] for block in blocks] == ["kept"]

    def test_marker_without_separator_aborts_block(self):
        """`*foo` is not an interior line, so the open block is dropped."""
        assert parse("\n".join(["/**", " * kept", " *foo", " */"])) == []
        assert parse("\n".join(["/**", " *foo", " */"])) == []
        source = "\n".join(["/**", " *foo", " */", "/**", " * after", " */"])
        assert [block["description"] for block in parse(source)] == ["after"]

    def test_stray_lines_after_end_are_ignored(self):
        source = "\n".join(["/**", " * one", " */", " * stray", " */"])
        blocks = parse(source)
        assert len(blocks) == 1
        assert blocks[0]["description"] == "one"

    def test_block_start_restarts_collection(self):
        source = "\n".join(["/**", " * dropped", "/**", " * second start", " */"])
        blocks = parse(source)
        assert len(blocks) == 1
        assert blocks[0]["description"] == "second start"
        assert blocks[0]["line"] == 2

    def test_indented_delimiters(self):
        source = "\n".join(["    /**", "     * nested", "     */"])
        assert parse(source)[0]["description"] == "nested"


class TestLineNumbers:
    """Test the line numbers reported on blocks and tags."""

    def test_physical_lines_without_one_liners(self):
        source = "\n".join([
            "import x;",
            "",
            "/**",
            " * Describe.",
            " * @param a",
            " *",
            " * @param b",
            " */",
        ])
        block = parse(source)[0]
        assert block["line"] == 2
        assert [tag["line"] for tag in block["tags"]] == [4, 6]

    def test_tag_lines_in_multiline_block(self):
        tags = parse(ADD_SOURCE)[0]["tags"]
        assert [tag["line"] for tag in tags] == [2, 3, 5]

    def test_one_liner_does_not_advance_counter(self):
        """Lines after a one-liner are numbered one lower than their index."""
        source = "\n".join([
            "/** first */",
            "/**",
            " * second",
            " * @tag x",
            " */",
        ])
        first, second = parse(source)
        assert first["line"] == 0
        assert second["line"] == 0
        assert second["tags"][0]["line"] == 2

    def test_one_liner_after_code(self):
        source = "\n".join(["a();", "b();", "/** here */"])
        assert parse(source)[0]["line"] == 2

    def test_one_liner_after_aborted_block(self):
        source = "\n".join([
            "/**",
            " * abandoned",
            "const x = 1;",
            " * not collected",
            " */",
            "/** kept */",
        ])
        assert parse(source)[0]["line"] == 5


class TestTrimOption:
    """Test content handling with and without trimming."""

    def test_trim_strips_marker_padding(self):
        source = "\n".join(["/**", " *   indented text", " */"])
        assert parse(source)[0]["description"] == "indented text"

    def test_no_trim_single_separator_space(self):
        source = "\n".join(["/**", " * foo", " */"])
        block = parse(source, {"trim": False})[0]
        assert block["description"] == "\nfoo\n"

    def test_no_trim_keeps_extra_indentation(self):
        source = "\n".join(["/**", " *   foo", " */"])
        block = parse(source, ParseOptions(trim=False))[0]
        assert block["description"] == "\n  foo\n"

    def test_no_trim_one_liner_keeps_trailing_space(self):
        block = parse("/** text */", {"trim": False})[0]
        assert block["description"] == "text "
        assert block["source"] == "text "

    def test_no_trim_skips_indented_tag_text(self):
        """Tag text that does not start with @ after the marker is not a tag."""
        source = "\n".join(["/**", " * Intro", " *   @param x", " */"])
        block = parse(source, {"trim": False})[0]
        assert block["tags"] == []
        assert block["description"] == "\nIntro"


class TestIncrementalExtraction:
    """Test the extractor as a line-at-a-time state machine."""

    def test_returns_block_on_closing_line(self):
        extract = mkextract()
        assert extract("/**") is None
        assert extract.collecting
        assert extract(" * Hello") is None
        block = extract(" */")
        assert block["description"] == "Hello"
        assert not extract.collecting

    def test_one_liner_does_not_disturb_open_block(self):
        extract = Extractor()
        results = [extract(line) for line in ["/**", " * outer", "/** inner */", " */"]]
        assert results[0] is None
        assert results[1] is None
        assert results[2]["description"] == "inner"
        assert results[2]["line"] == 2
        assert results[3]["description"] == "outer"
        assert results[3]["line"] == 0

    def test_interior_line_while_idle(self):
        extract = mkextract()
        assert extract(" * nothing open") is None
        assert extract(" */") is None
        assert not extract.collecting

    def test_parse_lines_accepts_file_style_lines(self):
        lines = ["/**\n", " * From a file\n", " * @since 1.0\n", " */\n"]
        blocks = list(parse_lines(lines))
        assert blocks[0]["description"] == "From a file"
        assert blocks[0]["tags"][0]["name"] == "1.0"

    def test_parse_is_idempotent(self):
        assert parse(ADD_SOURCE) == parse(ADD_SOURCE)

    def test_extractors_are_independent(self):
        first, second = mkextract(), mkextract()
        first("/**")
        assert first.collecting
        assert not second.collecting
        assert second(" */") is None


class TestInvalidInput:
    """Test caller misuse of the driver."""

    def test_non_string_source(self):
        with pytest.raises(InvalidInput):
            parse(None)

    def test_bytes_source(self):
        with pytest.raises(InvalidInput):
            parse(b"/** bytes */")

    def test_unknown_option(self):
        with pytest.raises(InvalidInput) as exc_info:
            parse("", {"dottedNames": True})
        assert "dottedNames" in str(exc_info.value)

    def test_options_of_wrong_type(self):
        with pytest.raises(InvalidInput):
            parse("", 5)

    def test_parsers_must_be_callables(self):
        with pytest.raises(InvalidInput):
            ParseOptions(parsers=["parse_tag"])

    def test_parsers_must_be_a_sequence(self):
        with pytest.raises(InvalidInput):
            ParseOptions(parsers="parse_tag")
