"""Step chat service with streaming support."""

import json
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.ai.chat.models import StepChat
from src.ai.chat.schemas import ChatMessage
from src.ai.client import LLMClient
from src.ai.errors import AIRuntimeError, AIRuntimeErrorCategory
from src.ai.prompts import build_step_system_prompt
from src.ai.providers import AIConfig
from src.content.exercises import extract_exercises
from src.content.service import ContentService
from src.user.service import UserSettingsService


logger = logging.getLogger(__name__)

# Older turns are kept in storage but not sent to the model
MAX_CONTEXT_MESSAGES = 20

_ERROR_MESSAGES = {
    AIRuntimeErrorCategory.RATE_LIMIT_OR_QUOTA: "Your AI provider is rate limiting requests. Please wait and try again.",
    AIRuntimeErrorCategory.TIMEOUT: "The AI provider took too long to respond. Please try again.",
    AIRuntimeErrorCategory.AUTHENTICATION: "Your AI provider rejected the saved API key. Please update it in settings.",
}
_DEFAULT_ERROR_MESSAGE = "Sorry, I'm having trouble responding right now. Please try again."

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class StepKey:
    """Identifies one user's conversation on one step."""

    user_id: UUID
    course_id: str
    item_id: str
    step_id: str


@dataclass(frozen=True)
class PreparedReply:
    """Everything needed to stream a reply once validation has passed."""

    key: StepKey
    config: AIConfig
    system_prompt: str
    message: str
    history: list[ChatMessage] = field(default_factory=list)


def sse_event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class StepChatService:
    """Stores step conversations and streams tutor replies."""

    def __init__(
        self,
        session: AsyncSession,
        settings_service: UserSettingsService,
        content_service: ContentService,
        llm_client: LLMClient,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.session = session
        self.settings_service = settings_service
        self.content_service = content_service
        self.llm_client = llm_client
        self._session_factory = session_factory

    async def _get_row(self, session: AsyncSession, key: StepKey) -> StepChat | None:
        stmt = select(StepChat).where(
            StepChat.user_id == key.user_id,
            StepChat.course_id == key.course_id,
            StepChat.item_id == key.item_id,
            StepChat.step_id == key.step_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_history(self, key: StepKey) -> list[ChatMessage]:
        row = await self._get_row(self.session, key)
        if row is None:
            return []
        return [ChatMessage.model_validate(message) for message in row.messages]

    async def save_history(
        self,
        key: StepKey,
        messages: list[ChatMessage],
        session: AsyncSession | None = None,
    ) -> None:
        """Replace the stored conversation for ``key``."""
        session = session or self.session
        row = await self._get_row(session, key)
        payload = [message.model_dump() for message in messages]
        if row is None:
            session.add(
                StepChat(
                    user_id=key.user_id,
                    course_id=key.course_id,
                    item_id=key.item_id,
                    step_id=key.step_id,
                    messages=payload,
                )
            )
        else:
            row.messages = payload
        await session.commit()

    async def delete_history(self, key: StepKey) -> None:
        await self.session.execute(
            delete(StepChat).where(
                StepChat.user_id == key.user_id,
                StepChat.course_id == key.course_id,
                StepChat.item_id == key.item_id,
                StepChat.step_id == key.step_id,
            )
        )
        await self.session.commit()

    async def prepare_reply(self, key: StepKey, message: str) -> PreparedReply:
        """Validate the request before any bytes are streamed.

        Raises ResourceNotFoundError for an unknown step, AIConfigurationError
        when the user has no usable provider, and credential errors when the
        stored key cannot be decrypted.
        """
        step = await self.content_service.get_step(key.course_id, key.item_id, key.step_id)
        config = await self.settings_service.resolve_ai_config(key.user_id)
        exercise_titles = [exercise.title for exercise in extract_exercises(step.content)]
        return PreparedReply(
            key=key,
            config=config,
            system_prompt=build_step_system_prompt(step.title, step.content, exercise_titles),
            message=message,
            history=await self.get_history(key),
        )

    async def stream_reply(self, prepared: PreparedReply) -> AsyncGenerator[str, None]:
        """
        Stream the tutor reply as SSE and store the exchange when complete.

        Yields SSE-formatted JSON chunks with structure:
        - data: {"content": "text", "done": false}
        - data: {"content": "", "done": true}
        - data: {"error": "message", "done": true}
        """
        context = prepared.history[-MAX_CONTEXT_MESSAGES:]
        messages = [message.model_dump() for message in context]
        messages.append({"role": "user", "content": prepared.message})

        chunks: list[str] = []
        try:
            async for delta in self.llm_client.stream_chat(prepared.config, messages, prepared.system_prompt):
                chunks.append(delta)
                yield sse_event({"content": delta, "done": False})
        except AIRuntimeError as e:
            logger.warning("Step chat failed for user %s: %s", prepared.key.user_id, e.category.value)
            yield sse_event({"error": _ERROR_MESSAGES.get(e.category, _DEFAULT_ERROR_MESSAGE), "done": True})
            return

        history = [
            *prepared.history,
            ChatMessage(role="user", content=prepared.message),
            ChatMessage(role="assistant", content="".join(chunks)),
        ]
        await self._persist_after_stream(prepared.key, history)
        yield sse_event({"content": "", "done": True})

    async def _persist_after_stream(self, key: StepKey, history: list[ChatMessage]) -> None:
        # The request session is closed once streaming starts
        try:
            if self._session_factory is None:
                await self.save_history(key, history)
                return
            async with self._session_factory() as session:
                await self.save_history(key, history, session=session)
        except Exception:
            logger.exception("Failed to save chat history for user %s", key.user_id)
