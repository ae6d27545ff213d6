"""Per-step tutor chat endpoints."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from src.ai.chat.dependencies import StepChatServiceDep
from src.ai.chat.schemas import ChatHistoryResponse, StepChatRequest
from src.ai.chat.service import StepKey
from src.auth import UserId
from src.middleware.security import chat_rate_limit


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/courses/{course_id}/items/{item_id}/steps/{step_id}/chat",
    tags=["step-chat"],
)


@router.get("")
async def get_chat_history(
    course_id: str,
    item_id: str,
    step_id: str,
    user_id: UserId,
    service: StepChatServiceDep,
) -> ChatHistoryResponse:
    """Return the stored conversation for a step."""
    key = StepKey(user_id=user_id, course_id=course_id, item_id=item_id, step_id=step_id)
    messages = await service.get_history(key)
    return ChatHistoryResponse(course_id=course_id, item_id=item_id, step_id=step_id, messages=messages)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat_history(
    course_id: str,
    item_id: str,
    step_id: str,
    user_id: UserId,
    service: StepChatServiceDep,
) -> None:
    """Clear the conversation for a step."""
    key = StepKey(user_id=user_id, course_id=course_id, item_id=item_id, step_id=step_id)
    await service.delete_history(key)


@router.post("", dependencies=[Depends(chat_rate_limit)])
async def chat_with_step(
    course_id: str,
    item_id: str,
    step_id: str,
    request: StepChatRequest,
    user_id: UserId,
    service: StepChatServiceDep,
) -> StreamingResponse:
    """Ask the tutor about a step and stream the answer as server-sent events."""
    key = StepKey(user_id=user_id, course_id=course_id, item_id=item_id, step_id=step_id)
    prepared = await service.prepare_reply(key, request.message)
    logger.info("Streaming step chat for user %s on %s/%s/%s", user_id, course_id, item_id, step_id)

    return StreamingResponse(
        service.stream_reply(prepared),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
