from typing import Annotated

from fastapi import Depends

from src.ai.chat.service import StepChatService
from src.ai.client import LLMClient
from src.content.dependencies import ContentServiceDep
from src.database.session import DbSession, async_session_maker
from src.user.dependencies import SettingsServiceDep


def get_llm_client() -> LLMClient:
    return LLMClient.from_settings()


def get_step_chat_service(
    session: DbSession,
    settings_service: SettingsServiceDep,
    content_service: ContentServiceDep,
    llm_client: Annotated[LLMClient, Depends(get_llm_client)],
) -> StepChatService:
    return StepChatService(
        session,
        settings_service,
        content_service,
        llm_client,
        session_factory=async_session_maker,
    )


StepChatServiceDep = Annotated[StepChatService, Depends(get_step_chat_service)]
