from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from src.config.settings import get_settings
from src.content.loader import ContentLoader
from src.content.service import ContentService


@lru_cache
def get_content_loader() -> ContentLoader:
    """Return the loader for the configured content directory."""
    return ContentLoader(get_settings().CONTENT_DIR)


def get_content_service(loader: Annotated[ContentLoader, Depends(get_content_loader)]) -> ContentService:
    return ContentService(loader)


ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
