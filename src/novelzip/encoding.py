from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from typing import Iterable

DEFAULT_ENCODINGS = ("utf-8", "gb18030")
REPLACEMENT_CHAR = "\ufffd"
# CJK Unified Ideographs as used by Chinese web-novel dumps.
_TARGET_SCRIPT_RE = re.compile(r"[一-龯]")
_NON_ASCII_RE = re.compile(r"[^\x00-\x7f]")


class EncodingError(ValueError):
    """Raised when no candidate encoding yields well-formed text."""


class SizeLimitError(EncodingError):
    """Raised when the input is larger than the configured decode limit."""


@dataclass(frozen=True)
class DecodedText:
    text: str
    encoding: str


def looks_malformed(text: str, script: re.Pattern[str] = _TARGET_SCRIPT_RE) -> bool:
    """
    Return True when a decode attempt produced garbage.

    Text is rejected if it carries the replacement glyph, or if it contains
    non-ASCII characters without a single character from the target script.
    """
    if REPLACEMENT_CHAR in text:
        return True
    return bool(_NON_ASCII_RE.search(text)) and not script.search(text)


def validate_encodings(encodings: Iterable[str]) -> tuple[str, ...]:
    candidates = tuple(encodings)
    if not candidates:
        raise ValueError("At least one candidate encoding is required.")
    for encoding in candidates:
        try:
            codecs.lookup(encoding)
        except LookupError as exc:
            raise ValueError(f"Unknown encoding: {encoding}") from exc
    return candidates


class EncodingResolver:
    def __init__(
        self,
        encodings: Iterable[str] = DEFAULT_ENCODINGS,
        *,
        max_bytes: int | None = None,
        script: re.Pattern[str] = _TARGET_SCRIPT_RE,
    ) -> None:
        self.encodings = validate_encodings(encodings)
        self.max_bytes = max_bytes
        self.script = script

    def check_size(self, size: int) -> None:
        if self.max_bytes is not None and size > self.max_bytes:
            raise SizeLimitError(f"Input is {size} bytes; limit is {self.max_bytes} bytes.")

    def resolve(self, data: bytes) -> DecodedText:
        self.check_size(len(data))
        for encoding in self.encodings:
            text = data.decode(encoding, errors="replace")
            if text.startswith("\ufeff"):
                text = text[1:]
            if looks_malformed(text, self.script):
                continue
            return DecodedText(text=text, encoding=encoding)
        tried = ", ".join(self.encodings)
        raise EncodingError(f"Failed to detect proper encoding (tried {tried}).")


def resolve_encoding(data: bytes, encodings: Iterable[str] = DEFAULT_ENCODINGS) -> DecodedText:
    return EncodingResolver(encodings).resolve(data)


__all__ = [
    "DEFAULT_ENCODINGS",
    "DecodedText",
    "EncodingError",
    "EncodingResolver",
    "SizeLimitError",
    "looks_malformed",
    "resolve_encoding",
    "validate_encodings",
]
