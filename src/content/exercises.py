"""Split step Markdown into plain content and ```` ```exercise ```` blocks.

An exercise block looks like::

    ```exercise title="Reverse a string"
    Write a function that reverses a string in place.
    <hint>
    Swap characters from both ends.
    </hint>
    <solution>
    ```c
    void reverse(char *s) { ... }
    ```
    </solution>
    ```

The extractor never raises: anything it cannot parse is returned as plain
Markdown so authored content always renders.
"""

import re
from dataclasses import dataclass, field


FENCE = "```"
EXERCISE_OPENER = FENCE + "exercise"
DEFAULT_TITLE = "Exercise"

SOLUTION_OPEN = "<solution>"
SOLUTION_CLOSE = "</solution>"

_TITLE_RE = re.compile(r'title="([^"]*)"')

_OPEN_TAGS = {"<hint>": "hint", SOLUTION_OPEN: "solution"}
_CLOSE_TAGS = {"</hint>": "hint", SOLUTION_CLOSE: "solution"}


@dataclass(frozen=True)
class PlainSegment:
    """Markdown to render as-is."""

    text: str


@dataclass(frozen=True)
class ExerciseSegment:
    """One parsed exercise block."""

    title: str
    description: str
    hint: str | None = None
    solution: str | None = None
    # Raw text between the header line and the closing fence
    body: str = field(default="", repr=False, compare=False)


Segment = PlainSegment | ExerciseSegment


def extract_segments(document: str) -> list[Segment]:
    """Split ``document`` into ordered plain and exercise segments."""
    segments: list[Segment] = []
    length = len(document)
    pos = 0

    while pos < length:
        start = _find_opener(document, pos)
        if start == -1:
            segments.append(PlainSegment(document[pos:]))
            break

        if start > pos:
            segments.append(PlainSegment(document[pos:start]))

        header_end = document.find("\n", start)
        if header_end == -1:
            # Opener on the last line: nothing can close it
            segments.append(PlainSegment(document[start:]))
            break

        body_start = header_end + 1
        close = _find_closing_fence(document, body_start)
        if close is None:
            segments.append(PlainSegment(document[start:]))
            break

        close_start, close_end = close
        title = _parse_title(document[start + len(EXERCISE_OPENER) : header_end])
        exercise = parse_exercise_body(document[body_start:close_start], title)
        if exercise is not None:
            segments.append(exercise)

        pos = close_end + 1 if close_end < length else length

    if not segments:
        segments.append(PlainSegment(""))
    return segments


def extract_exercises(document: str) -> list[ExerciseSegment]:
    """Return only the exercises of ``document``, in order."""
    return [segment for segment in extract_segments(document) if isinstance(segment, ExerciseSegment)]


def plain_text(segments: list[Segment]) -> str:
    """Join the plain Markdown of ``segments``, dropping exercises."""
    return "".join(segment.text for segment in segments if isinstance(segment, PlainSegment))


def _find_opener(document: str, pos: int) -> int:
    """Find the next ```` ```exercise ```` at the start of a line."""
    end_of_marker = len(EXERCISE_OPENER)
    while True:
        index = document.find(EXERCISE_OPENER, pos)
        if index == -1:
            return -1
        at_line_start = index == 0 or document[index - 1] == "\n"
        after = index + end_of_marker
        whole_word = after == len(document) or document[after] in " \t\r\n"
        if at_line_start and whole_word:
            return index
        pos = index + 1


def _find_closing_fence(document: str, body_start: int) -> tuple[int, int] | None:
    """Return ``(line_start, line_end)`` of the fence closing the exercise.

    A bare fence line only closes the exercise when it is not inside a
    ``<solution>`` region opened earlier in the body, since solutions carry
    their own fenced code. Only the most recent open/close tags are compared.
    """
    line_start = body_start
    length = len(document)
    while line_start < length:
        line_end = document.find("\n", line_start)
        if line_end == -1:
            line_end = length

        if document[line_start:line_end].rstrip() == FENCE:
            scanned = document[body_start:line_start]
            last_open = scanned.rfind(SOLUTION_OPEN)
            last_close = scanned.rfind(SOLUTION_CLOSE)
            if last_open == -1 or last_close > last_open:
                return line_start, line_end

        line_start = line_end + 1
    return None


def _parse_title(header: str) -> str:
    match = _TITLE_RE.search(header)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_TITLE


def parse_exercise_body(body: str, title: str = DEFAULT_TITLE) -> ExerciseSegment | None:
    """Parse an exercise body into description, hint and solution.

    Returns None when all three sections are empty.
    """
    collected: dict[str, list[str]] = {"description": [], "hint": [], "solution": []}
    current: str | None = None
    buffer: list[str] = []

    # Split on "\n" only, as the fence scanner does; other separators stay in the text
    for line in body.split("\n"):
        stripped = line.strip()

        opener = next((tag for tag in _OPEN_TAGS if stripped.startswith(tag)), None)
        if opener is not None:
            _flush(collected, current, buffer)
            current = _OPEN_TAGS[opener]
            inline = stripped[len(opener) :]
            closer = _closing_tag(current)
            if inline.endswith(closer):
                # <hint>text</hint> on one line
                buffer.append(inline[: -len(closer)])
                _flush(collected, current, buffer)
                current = None
            elif inline.strip():
                buffer.append(inline)
            continue

        if stripped in _CLOSE_TAGS:
            _flush(collected, current, buffer)
            current = None
            continue

        if current in ("hint", "solution") and stripped.endswith(_closing_tag(current)):
            # Content followed by the closing tag: S</solution>
            head = line.rstrip()[: -len(_closing_tag(current))]
            if head.strip():
                buffer.append(head)
            _flush(collected, current, buffer)
            current = None
            continue

        if current is None:
            if not stripped:
                continue
            current = "description"
        buffer.append(line)

    _flush(collected, current, buffer)

    description = "\n\n".join(collected["description"])
    hint = "\n\n".join(collected["hint"]) or None
    solution = "\n\n".join(collected["solution"]) or None
    if not (description or hint or solution):
        return None
    return ExerciseSegment(title=title, description=description, hint=hint, solution=solution, body=body)


def _closing_tag(section: str) -> str:
    return f"</{section}>"


def _flush(collected: dict[str, list[str]], section: str | None, buffer: list[str]) -> None:
    if section is not None and buffer:
        text = "\n".join(buffer).strip()
        if text:
            collected[section].append(text)
    buffer.clear()
