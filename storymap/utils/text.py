"""Text helpers for narration.

- **strip_html** -- turns rich event text into plain text for speech
  synthesis (entities decoded, tags removed, whitespace collapsed).
- **tokenize_words** -- splits plain text into word / punctuation tokens
  the same way the narration highlighter indexes them, so estimated word
  timestamps line up one-to-one with displayed words.
"""

from __future__ import annotations

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")

# Hebrew, Arabic, Cyrillic and CJK letters count as word characters.
_LETTERS = r"֐-׿؀-ۿЀ-ӿ一-鿿"
_TOKEN_RE = re.compile(rf"[{_LETTERS}\w]+|[^\s\w{_LETTERS}]+")
_PUNCT_RE = re.compile(rf"^[^{_LETTERS}\w]+$")


def strip_html(value: str | None) -> str:
    """Return plain text: HTML entities decoded, tags removed, whitespace collapsed."""
    if not value:
        return ""
    text = html.unescape(value.replace("&nbsp;", " "))
    text = _TAG_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def tokenize_words(text_html: str | None) -> list[dict[str, object]]:
    """Split rich text into ``{"word", "index", "isPunctuation"}`` tokens."""
    plain = strip_html(text_html)
    return [
        {
            "word": token,
            "index": index,
            "isPunctuation": bool(_PUNCT_RE.match(token)),
        }
        for index, token in enumerate(_TOKEN_RE.findall(plain))
    ]

