"""
Markdown block parser tests.
"""

from audionotes.adapters.rendering.markdown_blocks import (
    BULLET,
    HEADING,
    NUMBERED,
    PARAGRAPH,
    RULE,
    inline_markup,
    parse_markdown,
)


def test_parses_headings_paragraphs_and_lists():
    blocks = parse_markdown(
        "# Queues\n"
        "\n"
        "A queue holds work in order.\n"
        "It has a head.\n"
        "\n"
        "## Operations\n"
        "- Enqueue\n"
        "- Dequeue\n"
        "  - Removes the head\n"
        "\n"
        "1. First\n"
        "2. Second\n"
        "\n"
        "---\n"
    )

    assert [(block.kind, block.level) for block in blocks] == [
        (HEADING, 1),
        (PARAGRAPH, 0),
        (HEADING, 2),
        (BULLET, 0),
        (BULLET, 0),
        (BULLET, 1),
        (NUMBERED, 0),
        (NUMBERED, 0),
        (RULE, 0),
    ]
    assert blocks[1].text == "A queue holds work in order. It has a head."
    assert [block.number for block in blocks[6:8]] == [1, 2]


def test_deep_headings_are_capped_at_level_three():
    blocks = parse_markdown("#### Detail ####\n###### Tiny")

    assert [(block.kind, block.level, block.text) for block in blocks] == [
        (HEADING, 3, "Detail"),
        (HEADING, 3, "Tiny"),
    ]


def test_continuation_line_extends_list_item():
    blocks = parse_markdown("- A long point\n  that wraps")

    assert len(blocks) == 1
    assert blocks[0].text == "A long point that wraps"


def test_hash_without_space_is_paragraph_text():
    blocks = parse_markdown("#hashtag")

    assert blocks[0].kind == PARAGRAPH


def test_empty_input_has_no_blocks():
    assert parse_markdown("") == []
    assert parse_markdown("\n   \n") == []


def test_inline_markup_converts_emphasis_and_code():
    assert inline_markup("**Key** term and *aside*") == "<b>Key</b> term and <i>aside</i>"
    assert inline_markup("__strong__") == "<b>strong</b>"
    assert inline_markup("call `run()` now") == 'call <font face="Courier">run()</font> now'


def test_inline_markup_escapes_reserved_characters():
    assert inline_markup("a < b & c > d") == "a &lt; b &amp; c &gt; d"
    assert inline_markup("`<tag>`") == '<font face="Courier">&lt;tag&gt;</font>'


def test_inline_markup_keeps_unmatched_markers():
    assert inline_markup("2 * 3 = 6") == "2 * 3 = 6"
    assert inline_markup("a `dangling tick") == "a `dangling tick"
