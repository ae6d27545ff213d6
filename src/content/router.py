import logging

from fastapi import APIRouter

from src.content.dependencies import ContentServiceDep
from src.content.schemas import Course, CourseSummary, StepDocumentResponse


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/v1/courses", tags=["courses"])


@router.get("")
async def list_courses(service: ContentServiceDep) -> list[CourseSummary]:
    """List every course available in the content directory."""
    return await service.list_courses()


@router.get("/{course_id}")
async def get_course(course_id: str, service: ContentServiceDep) -> Course:
    """Get a course outline with its lessons, projects and steps."""
    return await service.get_course(course_id)


@router.get("/{course_id}/items/{item_id}/steps/{step_id}")
async def get_step(
    course_id: str,
    item_id: str,
    step_id: str,
    service: ContentServiceDep,
) -> StepDocumentResponse:
    """Get a step's Markdown split into renderable and exercise segments."""
    return await service.get_step_document(course_id, item_id, step_id)
