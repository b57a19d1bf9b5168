"""Patent search endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status

from app import schemas
from app.api.dependencies import SearchServiceDep

router = APIRouter(tags=["search"])

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


@router.post(
    "/search",
    response_model=schemas.SearchResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": schemas.ErrorResponse},
        403: {"model": schemas.ErrorResponse},
        404: {"model": schemas.ErrorResponse},
        429: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
        503: {"model": schemas.ErrorResponse},
        504: {"model": schemas.ErrorResponse},
    },
)
def search_patents(
    payload: schemas.SearchRequest,
    service: SearchServiceDep,
) -> schemas.SearchResponse:
    """Search USPTO filings and attach AI analysis."""

    logger.info("Search requested for %r", payload.keywords)
    return service.handle_search(payload)


@router.options("/search", include_in_schema=False)
def search_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
