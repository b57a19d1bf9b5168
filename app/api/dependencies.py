"""Shared API dependencies for FastAPI routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.core.config import get_settings
from app.services.search import SearchService


@lru_cache()
def get_search_service() -> SearchService:
    """Process-wide service so the analysis cache outlives single requests."""

    return SearchService(get_settings())


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]
