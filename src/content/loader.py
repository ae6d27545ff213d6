"""Load course content from the MDX tree on disk.

Layout::

    <content_dir>/<course>/course.mdx
    <content_dir>/<course>/lessons/<item>/lesson.mdx
    <content_dir>/<course>/lessons/<item>/steps/<step>/step.mdx

Each file starts with an optional YAML front matter block.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiofiles
import yaml

from src.content.schemas import Course, CourseItem, Step, StepSummary


logger = logging.getLogger(__name__)

COURSE_FILE = "course.mdx"
LESSON_FILE = "lesson.mdx"
STEP_FILE = "step.mdx"
LESSONS_DIR = "lessons"
STEPS_DIR = "steps"

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass(frozen=True)
class ContentDocument:
    """Front matter plus trimmed Markdown body."""

    metadata: dict[str, Any] = field(default_factory=dict)
    content: str = ""


def parse_front_matter(text: str) -> ContentDocument:
    """Split YAML front matter from the Markdown body."""
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return ContentDocument(metadata={}, content=text.strip())

    body = text[match.end() :]
    try:
        metadata = yaml.safe_load(match.group(1) or "")
    except yaml.YAMLError as e:
        logger.warning("Invalid front matter, ignoring it: %s", e)
        metadata = None

    if not isinstance(metadata, dict):
        metadata = {}
    return ContentDocument(metadata=metadata, content=body.strip())


def is_safe_id(value: str) -> bool:
    """Return True if ``value`` can be used as a single path component."""
    return bool(_SAFE_ID_RE.match(value)) and ".." not in value


def _order(metadata: dict[str, Any]) -> float:
    try:
        return float(metadata.get("order") or 0)
    except (TypeError, ValueError):
        return 0


class ContentLoader:
    """Reads courses, items and steps from a content directory."""

    def __init__(self, content_dir: str | Path) -> None:
        self.content_dir = Path(content_dir)

    async def _read_document(self, path: Path) -> ContentDocument | None:
        if not path.is_file():
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            text = await f.read()
        return parse_front_matter(text)

    def _course_path(self, course_id: str) -> Path | None:
        if not is_safe_id(course_id):
            return None
        return self.content_dir / course_id

    def _item_path(self, course_id: str, item_id: str) -> Path | None:
        course_path = self._course_path(course_id)
        if course_path is None or not is_safe_id(item_id):
            return None
        return course_path / LESSONS_DIR / item_id

    def list_course_ids(self) -> list[str]:
        """Return ids of every directory holding a ``course.mdx``."""
        if not self.content_dir.is_dir():
            logger.warning("Content directory %s does not exist", self.content_dir)
            return []
        return sorted(
            entry.name
            for entry in self.content_dir.iterdir()
            if entry.is_dir() and is_safe_id(entry.name) and (entry / COURSE_FILE).is_file()
        )

    async def get_course_meta(self, course_id: str) -> ContentDocument | None:
        course_path = self._course_path(course_id)
        if course_path is None:
            return None
        return await self._read_document(course_path / COURSE_FILE)

    async def get_steps(self, course_id: str, item_id: str) -> list[Step]:
        """Return the steps of an item sorted by their ``order``."""
        item_path = self._item_path(course_id, item_id)
        if item_path is None:
            return []
        steps_path = item_path / STEPS_DIR
        if not steps_path.is_dir():
            return []

        steps: list[Step] = []
        for entry in steps_path.iterdir():
            if not entry.is_dir() or not is_safe_id(entry.name):
                continue
            document = await self._read_document(entry / STEP_FILE)
            if document is None:
                continue
            steps.append(
                Step(
                    id=entry.name,
                    title=str(document.metadata.get("title") or entry.name),
                    order=_order(document.metadata),
                    content=document.content,
                    metadata=document.metadata,
                )
            )
        steps.sort(key=lambda step: (step.order, step.id))
        return steps

    async def get_step(self, course_id: str, item_id: str, step_id: str) -> Step | None:
        item_path = self._item_path(course_id, item_id)
        if item_path is None or not is_safe_id(step_id):
            return None
        document = await self._read_document(item_path / STEPS_DIR / step_id / STEP_FILE)
        if document is None:
            return None
        return Step(
            id=step_id,
            title=str(document.metadata.get("title") or step_id),
            order=_order(document.metadata),
            content=document.content,
            metadata=document.metadata,
        )

    async def get_items(self, course_id: str) -> list[CourseItem]:
        """Return the lessons and projects of a course sorted by ``order``."""
        course_path = self._course_path(course_id)
        if course_path is None:
            return []
        lessons_path = course_path / LESSONS_DIR
        if not lessons_path.is_dir():
            return []

        items: list[CourseItem] = []
        for entry in lessons_path.iterdir():
            if not entry.is_dir() or not is_safe_id(entry.name):
                continue
            document = await self._read_document(entry / LESSON_FILE)
            if document is None:
                continue

            item_type = document.metadata.get("type") or "lesson"
            if item_type not in ("lesson", "project"):
                logger.warning("Unknown item type %r in %s/%s, using 'lesson'", item_type, course_id, entry.name)
                item_type = "lesson"

            steps = await self.get_steps(course_id, entry.name)
            items.append(
                CourseItem(
                    id=entry.name,
                    title=str(document.metadata.get("title") or entry.name),
                    description=str(document.metadata.get("description") or ""),
                    type=item_type,
                    order=_order(document.metadata),
                    steps=[StepSummary(id=step.id, title=step.title, order=step.order) for step in steps],
                )
            )
        items.sort(key=lambda item: (item.order, item.id))
        return items

    async def load_course(self, course_id: str) -> Course | None:
        """Load a course outline, or None if the course does not exist."""
        meta = await self.get_course_meta(course_id)
        if meta is None:
            return None
        return Course(
            id=course_id,
            title=str(meta.metadata.get("title") or course_id),
            description=str(meta.metadata.get("description") or ""),
            items=await self.get_items(course_id),
        )

    async def load_all_courses(self) -> list[Course]:
        courses = []
        for course_id in self.list_course_ids():
            course = await self.load_course(course_id)
            if course is not None:
                courses.append(course)
        return courses
