"""Schemas for course content."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from src.content.exercises import ExerciseSegment, PlainSegment, Segment


class StepSummary(BaseModel):
    """Step entry in a course outline."""

    id: str
    title: str
    order: float = 0


class Step(StepSummary):
    """A single step with its raw Markdown."""

    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class CourseItem(BaseModel):
    """A lesson or project inside a course."""

    id: str
    title: str
    description: str = ""
    type: Literal["lesson", "project"] = "lesson"
    order: float = 0
    steps: list[StepSummary] = Field(default_factory=list)


class CourseSummary(BaseModel):
    """Course card data for the catalogue."""

    id: str
    title: str
    description: str = ""
    item_count: int = 0
    step_count: int = 0


class Course(BaseModel):
    """Full course outline."""

    id: str
    title: str
    description: str = ""
    items: list[CourseItem] = Field(default_factory=list)

    def summary(self) -> CourseSummary:
        return CourseSummary(
            id=self.id,
            title=self.title,
            description=self.description,
            item_count=len(self.items),
            step_count=sum(len(item.steps) for item in self.items),
        )


class MarkdownSegmentSchema(BaseModel):
    """Plain Markdown segment."""

    type: Literal["markdown"] = "markdown"
    text: str


class ExerciseSegmentSchema(BaseModel):
    """Exercise segment."""

    type: Literal["exercise"] = "exercise"
    title: str
    description: str
    hint: str | None = None
    solution: str | None = None


SegmentSchema = Annotated[MarkdownSegmentSchema | ExerciseSegmentSchema, Field(discriminator="type")]


def segment_to_schema(segment: Segment) -> MarkdownSegmentSchema | ExerciseSegmentSchema:
    """Convert an extractor segment into its API representation."""
    if isinstance(segment, PlainSegment):
        return MarkdownSegmentSchema(text=segment.text)
    if isinstance(segment, ExerciseSegment):
        return ExerciseSegmentSchema(
            title=segment.title,
            description=segment.description,
            hint=segment.hint,
            solution=segment.solution,
        )
    msg = f"Unknown segment type: {type(segment).__name__}"
    raise TypeError(msg)


class StepDocumentResponse(BaseModel):
    """Step content split into renderable segments."""

    course_id: str
    item_id: str
    step: Step
    segments: list[SegmentSchema]
    exercise_count: int
    previous_step_id: str | None = None
    next_step_id: str | None = None
