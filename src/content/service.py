"""Course content service."""

import logging

from src.content.exercises import ExerciseSegment, extract_segments
from src.content.loader import ContentLoader
from src.content.schemas import Course, CourseSummary, Step, StepDocumentResponse, segment_to_schema
from src.exceptions import ResourceNotFoundError


logger = logging.getLogger(__name__)


class ContentService:
    """Serves course outlines and step documents."""

    def __init__(self, loader: ContentLoader) -> None:
        self.loader = loader

    async def list_courses(self) -> list[CourseSummary]:
        courses = await self.loader.load_all_courses()
        return [course.summary() for course in courses]

    async def get_course(self, course_id: str) -> Course:
        course = await self.loader.load_course(course_id)
        if course is None:
            raise ResourceNotFoundError("Course", course_id)
        return course

    async def get_step(self, course_id: str, item_id: str, step_id: str) -> Step:
        step = await self.loader.get_step(course_id, item_id, step_id)
        if step is None:
            raise ResourceNotFoundError("Step", f"{course_id}/{item_id}/{step_id}")
        return step

    async def get_step_document(self, course_id: str, item_id: str, step_id: str) -> StepDocumentResponse:
        """Return a step with its content split into markdown and exercise segments."""
        step = await self.get_step(course_id, item_id, step_id)
        segments = extract_segments(step.content)

        sibling_ids = [sibling.id for sibling in await self.loader.get_steps(course_id, item_id)]
        position = sibling_ids.index(step_id) if step_id in sibling_ids else -1
        previous_step_id = sibling_ids[position - 1] if position > 0 else None
        next_step_id = sibling_ids[position + 1] if 0 <= position < len(sibling_ids) - 1 else None

        exercise_count = sum(1 for segment in segments if isinstance(segment, ExerciseSegment))
        logger.debug("Step %s/%s/%s has %d exercises", course_id, item_id, step_id, exercise_count)

        return StepDocumentResponse(
            course_id=course_id,
            item_id=item_id,
            step=step,
            segments=[segment_to_schema(segment) for segment in segments],
            exercise_count=exercise_count,
            previous_step_id=previous_step_id,
            next_step_id=next_step_id,
        )
