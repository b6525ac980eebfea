from __future__ import annotations

import re

_LINE_ENDING_RE = re.compile(r"\r\n?")
_EXCESS_BREAKS_RE = re.compile(r"\n{3,}")
_HORIZONTAL_RUN_RE = re.compile(r"[^\S\n]{2,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"[^\S\n]+([,.;:!?])")
# Digits, quotes, closing brackets and further punctuation keep their spacing.
_MISSING_SPACE_AFTER_PUNCT_RE = re.compile(r"([,.;:!?])(?=[^\s\"'\)\]\d,.;:!?])")

PUNCTUATION_MAP: dict[str, str] = {
    "，": ",",
    "、": ",",
    "。": ".",
    "．": ".",
    "；": ";",
    "：": ":",
    "？": "?",
    "！": "!",
    "“": '"',
    "”": '"',
    "「": '"',
    "」": '"',
    "『": '"',
    "』": '"',
    "‘": "'",
    "’": "'",
    "（": "(",
    "）": ")",
    "【": "[",
    "】": "]",
    "〔": "[",
    "〕": "]",
    "…": "...",
    "—": "-",
    "–": "-",
    "\u00a0": " ",
    "\u3000": " ",
    "\ufeff": "",
    "\ufffd": "",
}
_PUNCTUATION_TABLE = str.maketrans(PUNCTUATION_MAP)


def unify_line_endings(text: str) -> str:
    return _LINE_ENDING_RE.sub("\n", text)


def _collapse_whitespace(text: str) -> str:
    text = _EXCESS_BREAKS_RE.sub("\n\n", text)
    text = _HORIZONTAL_RUN_RE.sub(" ", text)
    return text.strip()


def normalize_punctuation(text: str) -> str:
    """Map full-width and typographic punctuation to ASCII and fix spacing around it."""
    text = text.translate(_PUNCTUATION_TABLE)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    return _MISSING_SPACE_AFTER_PUNCT_RE.sub(r"\1 ", text)


def strip_divider_lines(text: str, divider: str) -> str:
    marker = " ".join(divider.split())
    if not marker:
        return text
    return "\n".join(
        line for line in text.split("\n") if " ".join(line.split()) != marker
    )


def normalize_content(
    text: str,
    *,
    punctuation: bool = False,
    divider: str | None = None,
) -> str:
    """
    Clean whitespace noise in chapter text.

    Line endings become ``\\n``, runs of three or more breaks shrink to a single
    blank line, horizontal whitespace runs shrink to one space and the result
    is trimmed. With ``punctuation`` the fixed punctuation table is applied
    first; with ``divider`` lines consisting only of that marker are dropped.
    The function is idempotent for every combination of options.
    """
    text = unify_line_endings(text)
    if punctuation:
        text = normalize_punctuation(text)
        if divider:
            divider = normalize_punctuation(divider)
    if divider:
        text = strip_divider_lines(text, divider)
    return _collapse_whitespace(text)


__all__ = [
    "PUNCTUATION_MAP",
    "normalize_content",
    "normalize_punctuation",
    "strip_divider_lines",
    "unify_line_endings",
]
