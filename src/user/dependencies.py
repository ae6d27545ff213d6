from typing import Annotated

from fastapi import Depends

from src.credentials.dependencies import Cipher
from src.database.session import DbSession
from src.user.service import UserSettingsService


def get_user_settings_service(session: DbSession, cipher: Cipher) -> UserSettingsService:
    return UserSettingsService(session, cipher)


SettingsServiceDep = Annotated[UserSettingsService, Depends(get_user_settings_service)]
