"""Unit tests for narration text helpers."""

from storymap.utils.text import strip_html, tokenize_words


class TestStripHtml:
    def test_tags_entities_and_whitespace(self) -> None:
        assert strip_html("<p>Tom&nbsp;&amp;  Jerry</p>\n<p>met</p>") == "Tom & Jerry met"

    def test_empty(self) -> None:
        assert strip_html(None) == ""
        assert strip_html("<br/>") == ""


class TestTokenizeWords:
    def test_words_and_punctuation(self) -> None:
        tokens = tokenize_words("<p>Hello, world!</p>")
        assert [t["word"] for t in tokens] == ["Hello", ",", "world", "!"]
        assert [t["isPunctuation"] for t in tokens] == [False, True, False, True]
        assert [t["index"] for t in tokens] == [0, 1, 2, 3]

    def test_hebrew_words(self) -> None:
        tokens = tokenize_words("שלום עולם.")
        assert [t["word"] for t in tokens] == ["שלום", "עולם", "."]
