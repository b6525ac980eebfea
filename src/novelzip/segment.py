from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Mapping

from .normalize import normalize_content, unify_line_endings

# 第 + numeral (Arabic digits or Chinese numeral glyphs) + 章, optionally followed by a title.
CHAPTER_HEADING_RE = re.compile(r"^第[零〇一二两三四五六七八九十百千万\d]+章")
DEFAULT_PLACEHOLDER_TITLE = "正文"


@dataclass(frozen=True)
class Chapter:
    title: str
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"title": self.title, "content": self.content}

    @classmethod
    def from_payload(cls, payload: object) -> "Chapter":
        if not isinstance(payload, Mapping):
            raise ValueError("Chapter entry must be an object.")
        title = payload.get("title")
        content = payload.get("content")
        if not isinstance(title, str) or not isinstance(content, str):
            raise ValueError("Chapter entry needs string 'title' and 'content'.")
        return cls(title=title, content=content)


@dataclass
class ChapterCollection:
    chapters: list[Chapter] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.chapters)

    def __iter__(self) -> Iterator[Chapter]:
        return iter(self.chapters)

    def to_payload(self) -> dict[str, list[dict[str, str]]]:
        return {"chapters": [chapter.to_payload() for chapter in self.chapters]}

    @classmethod
    def from_payload(cls, payload: object) -> "ChapterCollection":
        if not isinstance(payload, Mapping):
            raise ValueError("Collection payload must be an object.")
        entries = payload.get("chapters")
        if not isinstance(entries, list):
            raise ValueError("Collection payload needs a 'chapters' list.")
        return cls(chapters=[Chapter.from_payload(entry) for entry in entries])


class EmptyPolicy(str, Enum):
    """What to return when no heading line is found."""

    SKIP = "skip"
    SINGLE = "single"


class SegmentPhase(Enum):
    AWAITING_MARKER = "awaiting_marker"
    BEFORE_FIRST_CHAPTER = "before_first_chapter"
    IN_CHAPTER = "in_chapter"


class LineAction(Enum):
    DISCARD = "discard"
    ENTER_CONTENT = "enter_content"
    OPEN_CHAPTER = "open_chapter"
    APPEND = "append"


def is_chapter_heading(line: str, heading: re.Pattern[str] = CHAPTER_HEADING_RE) -> bool:
    return heading.match(line.strip()) is not None


def transition(
    phase: SegmentPhase,
    line: str,
    *,
    content_marker: str | None = None,
    heading: re.Pattern[str] = CHAPTER_HEADING_RE,
) -> tuple[SegmentPhase, LineAction]:
    """Return the next phase and what to do with ``line``."""
    if phase is SegmentPhase.AWAITING_MARKER:
        if content_marker is not None and line.strip() == content_marker.strip():
            return SegmentPhase.BEFORE_FIRST_CHAPTER, LineAction.ENTER_CONTENT
        return phase, LineAction.DISCARD
    if is_chapter_heading(line, heading):
        return SegmentPhase.IN_CHAPTER, LineAction.OPEN_CHAPTER
    if phase is SegmentPhase.IN_CHAPTER:
        return phase, LineAction.APPEND
    return phase, LineAction.DISCARD


class ChapterSegmenter:
    def __init__(
        self,
        *,
        content_marker: str | None = None,
        divider: str | None = None,
        punctuation: bool = False,
        empty_policy: EmptyPolicy | str = EmptyPolicy.SKIP,
        placeholder_title: str = DEFAULT_PLACEHOLDER_TITLE,
        heading: re.Pattern[str] = CHAPTER_HEADING_RE,
    ) -> None:
        self.content_marker = content_marker
        self.divider = divider
        self.punctuation = punctuation
        self.empty_policy = EmptyPolicy(empty_policy)
        self.placeholder_title = placeholder_title
        self.heading = heading
        self.reset()

    def reset(self) -> None:
        self.phase = (
            SegmentPhase.AWAITING_MARKER
            if self.content_marker is not None
            else SegmentPhase.BEFORE_FIRST_CHAPTER
        )
        self._title: str | None = None
        self._pending: list[str] = []

    def _clean(self, text: str) -> str:
        return normalize_content(text, punctuation=self.punctuation, divider=self.divider)

    def _close(self) -> Chapter | None:
        if self._title is None:
            return None
        lines = self._pending
        while lines and not lines[-1].strip():
            lines.pop()
        chapter = Chapter(title=self._title, content=self._clean("\n".join(lines)))
        self._title = None
        self._pending = []
        return chapter

    def feed(self, line: str) -> Chapter | None:
        """Consume one line; return the chapter it closed, if any."""
        self.phase, action = transition(
            self.phase,
            line,
            content_marker=self.content_marker,
            heading=self.heading,
        )
        if action is LineAction.OPEN_CHAPTER:
            closed = self._close()
            self._title = line.strip()
            return closed
        if action is LineAction.APPEND and (line.strip() or self._pending):
            self._pending.append(line)
        return None

    def finish(self) -> Chapter | None:
        return self._close()

    def iter_chapters(self, lines: Iterable[str]) -> Iterator[Chapter]:
        self.reset()
        for line in lines:
            closed = self.feed(line)
            if closed is not None:
                yield closed
        last = self.finish()
        if last is not None:
            yield last

    def segment(self, text: str) -> ChapterCollection:
        lines = unify_line_endings(text).split("\n")
        chapters = list(self.iter_chapters(lines))
        if chapters or self.empty_policy is EmptyPolicy.SKIP:
            return ChapterCollection(chapters=chapters)
        body = self._clean("\n".join(self._content_lines(lines)))
        if not body:
            return ChapterCollection()
        return ChapterCollection(chapters=[Chapter(title=self.placeholder_title, content=body)])

    def _content_lines(self, lines: list[str]) -> list[str]:
        if self.content_marker is None:
            return lines
        marker = self.content_marker.strip()
        for index, line in enumerate(lines):
            if line.strip() == marker:
                return lines[index + 1 :]
        return []


def segment_text(text: str, **options: object) -> ChapterCollection:
    return ChapterSegmenter(**options).segment(text)  # type: ignore[arg-type]


__all__ = [
    "CHAPTER_HEADING_RE",
    "DEFAULT_PLACEHOLDER_TITLE",
    "Chapter",
    "ChapterCollection",
    "ChapterSegmenter",
    "EmptyPolicy",
    "LineAction",
    "SegmentPhase",
    "is_chapter_heading",
    "segment_text",
    "transition",
]
