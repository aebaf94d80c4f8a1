"""Tests for content normalization."""

import pytest

from newsdesk.normalization import (
    EMPTY_CONTENT_HASH,
    compute_content_hash,
    count_words,
    extract_clean_content,
    normalize,
    select_source_text,
    strip_markup,
)

SAMPLES = [
    "Hello   world",
    "  leading and trailing\t\nwhitespace  ",
    "<p>Mortgage rates <b>fell</b> to 6.5%.</p>",
    "<div><script>var x = 1;</script><p>Visible text</p><style>p {}</style></div>",
    "Tom &amp; Jerry buy a house",
    "&lt;b&gt;Rates&lt;/b&gt; fall",
    "AT&amp;amp;T earnings rise",
    "&amp;lt;p&amp;gt;Double escaped&amp;lt;/p&amp;gt;",
    "",
    "plain text with no markup at all",
]


def test_collapses_whitespace():
    result = normalize("Hello   world")
    assert result.clean_content == "Hello world"
    assert result.word_count == 2


def test_equivalent_inputs_share_a_hash():
    assert normalize("Hello   world").content_hash == normalize("Hello world").content_hash


def test_word_count_scenario():
    assert normalize("One two three").word_count == 3


@pytest.mark.parametrize("raw", SAMPLES)
def test_normalize_is_idempotent(raw):
    first = normalize(raw)
    second = normalize(first.clean_content)
    assert second == first


def test_hash_is_stable_sha256():
    # Fixed digest: must not change between runs or processes.
    assert compute_content_hash("Hello world") == (
        "64ec88ca00b268e5ba1a35678a1b5316d212f4f366b2477232534a8aeca37f3c"
    )
    assert normalize("Hello world").content_hash == compute_content_hash("Hello world")


def test_strips_markup_and_non_content_tags():
    clean = strip_markup(SAMPLES[3])
    assert clean == "Visible text"


def test_inline_tags_keep_word_boundaries():
    assert strip_markup("<p>Mortgage rates <b>fell</b> to 6.5%.</p>") == "Mortgage rates fell to 6.5%."


def test_entities_are_unescaped():
    assert strip_markup("Tom &amp; Jerry") == "Tom & Jerry"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("&lt;b&gt;Rates&lt;/b&gt; fall", "Rates fall"),
        ("AT&amp;amp;T earnings rise", "AT&T earnings rise"),
        ("&amp;lt;p&amp;gt;Double escaped&amp;lt;/p&amp;gt;", "Double escaped"),
    ],
)
def test_escaped_markup_is_fully_stripped(raw, expected):
    first = normalize(raw)
    assert first.clean_content == expected
    assert normalize(first.clean_content).content_hash == first.content_hash


@pytest.mark.parametrize("raw", [None, "", "   \n\t", b"", "<p></p>"])
def test_empty_input_maps_to_sentinel(raw):
    result = normalize(raw)
    assert result.clean_content == ""
    assert result.word_count == 0
    assert result.content_hash == EMPTY_CONTENT_HASH
    assert result.is_empty


def test_bytes_are_decoded():
    assert normalize(b"caf\xc3\xa9 open").clean_content == "café open"


def test_count_words_handles_missing_text():
    assert count_words(None) == 0
    assert count_words("") == 0
    assert count_words("a  b\nc") == 3


def test_source_text_priority():
    item = {
        "content_variants": {"wordpress_content": {"content": "<p>From WordPress</p>"}},
        "clean_content": "Clean",
        "raw_content": "Raw",
        "summary": "Summary",
    }
    assert select_source_text(item) == "<p>From WordPress</p>"

    del item["content_variants"]
    assert select_source_text(item) == "Clean"

    item["clean_content"] = None
    assert select_source_text(item) == "Raw"

    item["raw_content"] = ""
    assert select_source_text(item) == "Summary"

    assert select_source_text({"excerpt": "Excerpt only"}) == "Excerpt only"
    assert select_source_text({}) == ""


def test_source_text_accepts_json_variants():
    item = {"content_variants": '{"wordpress_content": {"content": "JSON body"}}', "raw_content": "Raw"}
    assert extract_clean_content(item) == "JSON body"
