from __future__ import annotations

from novelzip.segment import (
    Chapter,
    ChapterCollection,
    ChapterSegmenter,
    EmptyPolicy,
    LineAction,
    SegmentPhase,
    is_chapter_heading,
    segment_text,
    transition,
)


def test_two_chapters_and_discarded_preamble() -> None:
    text = "preamble\n第1章 Title A\nbody1\nbody1b\n第2章 Title B\nbody2"
    collection = segment_text(text)
    assert collection.chapters == [
        Chapter(title="第1章 Title A", content="body1\nbody1b"),
        Chapter(title="第2章 Title B", content="body2"),
    ]


def test_heading_grammar() -> None:
    assert is_chapter_heading("第一章")
    assert is_chapter_heading("  第一百二十三章 风起云涌  ")
    assert is_chapter_heading("第0012章")
    assert is_chapter_heading("第两千零一章 结局")
    assert not is_chapter_heading("第X章")
    assert not is_chapter_heading("序章")
    assert not is_chapter_heading("他在第一章里写道")
    assert not is_chapter_heading("第一节")


def test_transition_table() -> None:
    before = SegmentPhase.BEFORE_FIRST_CHAPTER
    inside = SegmentPhase.IN_CHAPTER
    assert transition(before, "front matter") == (before, LineAction.DISCARD)
    assert transition(before, "第1章") == (inside, LineAction.OPEN_CHAPTER)
    assert transition(inside, "body") == (inside, LineAction.APPEND)
    assert transition(inside, "第2章 next") == (inside, LineAction.OPEN_CHAPTER)


def test_transition_waits_for_content_marker() -> None:
    waiting = SegmentPhase.AWAITING_MARKER
    assert transition(waiting, "第1章", content_marker="===") == (waiting, LineAction.DISCARD)
    assert transition(waiting, " === ", content_marker="===") == (
        SegmentPhase.BEFORE_FIRST_CHAPTER,
        LineAction.ENTER_CONTENT,
    )


def test_feed_emits_previous_chapter_on_next_heading() -> None:
    segmenter = ChapterSegmenter()
    assert segmenter.feed("第1章 A") is None
    assert segmenter.feed("line") is None
    closed = segmenter.feed("第2章 B")
    assert closed == Chapter(title="第1章 A", content="line")
    assert segmenter.phase is SegmentPhase.IN_CHAPTER
    assert segmenter.finish() == Chapter(title="第2章 B", content="")
    assert segmenter.finish() is None


def test_leading_and_trailing_blank_lines_are_trimmed() -> None:
    text = "第1章 A\n\n\n  \nfirst\n\n\n\nsecond\n\n\n"
    collection = segment_text(text)
    assert collection.chapters[0].content == "first\n\nsecond"


def test_crlf_input_and_title_trimming() -> None:
    text = "第1章 A  \r\nbody\r\n　　第二章 B\r\nmore"
    collection = segment_text(text)
    assert [ch.title for ch in collection] == ["第1章 A", "第二章 B"]
    assert [ch.content for ch in collection] == ["body", "more"]


def test_content_marker_skips_preamble_headings() -> None:
    text = "第1章 目录\n第2章 目录\n------\n第1章 正文\n内容"
    collection = segment_text(text, content_marker="------")
    assert collection.chapters == [Chapter(title="第1章 正文", content="内容")]


def test_missing_content_marker_yields_nothing() -> None:
    collection = segment_text("第1章 A\nbody", content_marker="------")
    assert len(collection) == 0


def test_divider_lines_removed_from_content() -> None:
    text = "第1章 A\nbody\n※※※\nmore"
    collection = segment_text(text, divider="※※※")
    assert collection.chapters[0].content == "body\nmore"


def test_punctuation_mode_applies_to_content_only() -> None:
    collection = segment_text("第1章 你好，世界\n你好，世界。", punctuation=True)
    assert collection.chapters[0].title == "第1章 你好，世界"
    assert collection.chapters[0].content == "你好, 世界."


def test_zero_chapters_skip_policy_is_empty() -> None:
    collection = segment_text("just some text\nwith no headings")
    assert collection == ChapterCollection()


def test_zero_chapters_single_policy_wraps_text() -> None:
    segmenter = ChapterSegmenter(empty_policy=EmptyPolicy.SINGLE, placeholder_title="全文")
    collection = segmenter.segment("just  some text\n\n\n\nwith no headings\n")
    assert collection.chapters == [
        Chapter(title="全文", content="just some text\n\nwith no headings")
    ]
    # the segmenter is reusable and consistent
    assert segmenter.segment("just  some text\n\n\n\nwith no headings\n") == collection


def test_single_policy_respects_content_marker() -> None:
    segmenter = ChapterSegmenter(empty_policy="single", content_marker="---")
    collection = segmenter.segment("meta\n---\nstory")
    assert collection.chapters == [Chapter(title="正文", content="story")]


def test_single_policy_on_blank_text_is_empty() -> None:
    segmenter = ChapterSegmenter(empty_policy=EmptyPolicy.SINGLE)
    assert len(segmenter.segment("\n  \n")) == 0


def test_collection_payload_roundtrip() -> None:
    collection = ChapterCollection(chapters=[Chapter(title="第1章", content="a")])
    payload = collection.to_payload()
    assert payload == {"chapters": [{"title": "第1章", "content": "a"}]}
    assert ChapterCollection.from_payload(payload) == collection


def test_single_policy_with_absent_marker_is_empty() -> None:
    segmenter = ChapterSegmenter(empty_policy=EmptyPolicy.SINGLE, content_marker="---")
    assert len(segmenter.segment("meta\nstory without marker")) == 0
