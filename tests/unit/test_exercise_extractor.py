"""Tests for splitting step Markdown into plain and exercise segments."""

import pytest

from src.content.exercises import (
    DEFAULT_TITLE,
    ExerciseSegment,
    PlainSegment,
    extract_exercises,
    extract_segments,
    parse_exercise_body,
    plain_text,
)


WELL_FORMED = '```exercise title="T"\nBody\n<hint>\nH\n</hint>\n<solution>\nS\n</solution>\n```'

NESTED = (
    "Intro\n"
    '```exercise title="Reverse"\n'
    "Reverse a string.\n"
    "<solution>\n"
    "```python\n"
    "def rev(s):\n"
    "    return s[::-1]\n"
    "```\n"
    "</solution>\n"
    "```\n"
    "Outro\n"
)


class TestPlainDocuments:
    """Documents without exercise blocks."""

    @pytest.mark.parametrize(
        "text",
        [
            "# Title\n\nSome text.",
            "```python\nprint('hi')\n```\n",
            "inline ```exercise is not at line start",
            "```exercises\nplural keyword is not an opener\n```",
        ],
    )
    def test_no_markers_returns_single_plain_segment(self, text: str) -> None:
        """Text without an opener comes back unchanged as one segment."""
        assert extract_segments(text) == [PlainSegment(text)]

    def test_empty_document(self) -> None:
        assert extract_segments("") == [PlainSegment("")]


class TestExerciseBlocks:
    """Well-formed exercise blocks."""

    def test_single_well_formed_block(self) -> None:
        """All three sections and the title are parsed."""
        assert extract_segments(WELL_FORMED) == [
            ExerciseSegment(title="T", description="Body", hint="H", solution="S"),
        ]

    def test_missing_title_uses_default(self) -> None:
        segments = extract_segments("```exercise\nDo it.\n```\n")
        assert segments == [ExerciseSegment(title=DEFAULT_TITLE, description="Do it.")]

    def test_empty_title_uses_default(self) -> None:
        segments = extract_segments('```exercise title=""\nDo it.\n```')
        assert segments[0].title == DEFAULT_TITLE

    def test_nested_fence_in_solution_does_not_close_block(self) -> None:
        """The fence inside <solution> is part of the solution, not the close."""
        segments = extract_segments(NESTED)

        assert len(segments) == 3
        assert segments[0] == PlainSegment("Intro\n")
        exercise = segments[1]
        assert isinstance(exercise, ExerciseSegment)
        assert exercise.title == "Reverse"
        assert exercise.description == "Reverse a string."
        assert exercise.solution == "```python\ndef rev(s):\n    return s[::-1]\n```"
        assert segments[2] == PlainSegment("Outro\n")

    def test_multiple_blocks_parsed_independently(self) -> None:
        """State from one block never leaks into the next."""
        document = (
            '```exercise title="One"\nFirst\n<hint>\nH1\n</hint>\n```\n'
            "Between\n"
            '```exercise title="Two"\nSecond\n```\n'
        )
        segments = extract_segments(document)

        assert segments == [
            ExerciseSegment(title="One", description="First", hint="H1"),
            PlainSegment("Between\n"),
            ExerciseSegment(title="Two", description="Second"),
        ]

    def test_empty_exercise_is_dropped(self) -> None:
        segments = extract_segments("Before\n```exercise\n\n   \n```\nAfter")
        assert segments == [PlainSegment("Before\n"), PlainSegment("After")]

    def test_extract_exercises_filters_plain_segments(self) -> None:
        exercises = extract_exercises(NESTED)
        assert [exercise.title for exercise in exercises] == ["Reverse"]

    def test_plain_text_drops_exercises(self) -> None:
        assert plain_text(extract_segments(NESTED)) == "Intro\nOutro\n"


class TestMalformedBlocks:
    """Malformed input degrades to plain text and never raises."""

    def test_unterminated_block_becomes_plain_text(self) -> None:
        document = 'Intro\n```exercise title="Broken"\nNo closing fence\n<hint>\nnever closed'
        assert extract_segments(document) == [
            PlainSegment("Intro\n"),
            PlainSegment('```exercise title="Broken"\nNo closing fence\n<hint>\nnever closed'),
        ]

    def test_opener_on_last_line(self) -> None:
        assert extract_segments("Text\n```exercise") == [PlainSegment("Text\n"), PlainSegment("```exercise")]

    def test_unclosed_solution_swallows_every_fence(self) -> None:
        """Without </solution>, no later fence can close the block."""
        document = "```exercise\nDo it.\n<solution>\n```\nmore\n```\n"
        assert extract_segments(document) == [PlainSegment(document)]

    def test_later_blocks_not_parsed_after_malformed_block(self) -> None:
        document = "```exercise\n<solution>\n```\n```exercise\nSecond\n"
        segments = extract_segments(document)
        assert segments == [PlainSegment(document)]


class TestBodyParsing:
    """Line-level parsing of an exercise body."""

    def test_repeated_hint_sections_are_concatenated(self) -> None:
        body = "Task\n<hint>\nFirst\n</hint>\n<hint>\nSecond\n</hint>"
        exercise = parse_exercise_body(body, "T")
        assert exercise is not None
        assert exercise.hint == "First\n\nSecond"

    def test_inline_hint(self) -> None:
        exercise = parse_exercise_body("Task\n<hint>Look closer</hint>")
        assert exercise is not None
        assert exercise.hint == "Look closer"

    def test_whitespace_lines_inside_section_are_preserved(self) -> None:
        exercise = parse_exercise_body("<solution>\nline one\n\n   \nline two\n</solution>")
        assert exercise is not None
        assert exercise.solution == "line one\n\n   \nline two"
        assert exercise.description == ""

    def test_missing_sections_are_none(self) -> None:
        exercise = parse_exercise_body("Only a description")
        assert exercise is not None
        assert exercise.hint is None
        assert exercise.solution is None

    def test_text_after_closed_tag_starts_description_again(self) -> None:
        exercise = parse_exercise_body("<hint>\nH\n</hint>\nThen describe")
        assert exercise is not None
        assert exercise.description == "Then describe"
        assert exercise.hint == "H"


class TestContentPreservation:
    """No authored text outside structural fence lines is lost."""

    @pytest.mark.parametrize("document", [WELL_FORMED, NESTED, "plain\n```exercise\nunterminated"])
    def test_segments_cover_all_content(self, document: str) -> None:
        segments = extract_segments(document)
        rebuilt = "".join(
            segment.text if isinstance(segment, PlainSegment) else segment.body for segment in segments
        )
        authored = [line for line in document.splitlines() if line != "```" and not line.startswith("```exercise")]
        for line in authored:
            assert line in rebuilt


class TestClosingTagsAfterContent:
    """A closing tag may follow content on the same line."""

    def test_solution_closed_after_content(self) -> None:
        segments = extract_segments("```exercise\nTask\n<solution>\nS</solution>\n```\n")
        assert segments == [ExerciseSegment(title=DEFAULT_TITLE, description="Task", solution="S")]

    def test_hint_closed_after_content(self) -> None:
        """Lines after the closed hint go back to the description."""
        exercise = parse_exercise_body("Task\n<hint>\nH</hint>\nMore task")
        assert exercise is not None
        assert exercise.hint == "H"
        assert exercise.description == "Task\n\nMore task"

    def test_other_section_tag_does_not_close(self) -> None:
        exercise = parse_exercise_body("<hint>\nsee </solution>\n</hint>")
        assert exercise is not None
        assert exercise.hint == "see </solution>"


class TestLineSeparators:
    """Only newlines split lines; other separators are kept verbatim."""

    @pytest.mark.parametrize("separator", ["\u2028", "\x0c", "\x85", "\x1e"])
    def test_unicode_separator_kept_in_description(self, separator: str) -> None:
        exercise = parse_exercise_body(f"first{separator}second")
        assert exercise is not None
        assert exercise.description == f"first{separator}second"

    def test_crlf_tags_are_recognised(self) -> None:
        exercise = parse_exercise_body("Task\r\n<hint>\r\nH\r\n</hint>\r\n")
        assert exercise is not None
        assert exercise.description == "Task"
        assert exercise.hint == "H"
