"""Schemas for step chat."""

from typing import Literal

from pydantic import BaseModel, Field


MAX_MESSAGE_LENGTH = 8000


class ChatMessage(BaseModel):
    """Simple chat message."""

    role: Literal["user", "assistant"]
    content: str


class StepChatRequest(BaseModel):
    """Question about the current step."""

    message: str = Field(
        ..., min_length=1, max_length=MAX_MESSAGE_LENGTH, description="User message to send to the tutor"
    )


class ChatHistoryResponse(BaseModel):
    """Stored conversation for one step."""

    course_id: str
    item_id: str
    step_id: str
    messages: list[ChatMessage] = Field(default_factory=list)
