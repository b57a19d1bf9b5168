"""Serverless entry point (Netlify/Lambda style ``handler(event, context)``)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.api.routes.search import CORS_HEADERS
from app.core.errors import SearchError
from app.schemas.search import SearchRequest
from app.services.search import SearchService

logger = logging.getLogger(__name__)

HEADERS = {**CORS_HEADERS, "Content-Type": "application/json"}

_service: Optional[SearchService] = None


def get_service() -> SearchService:
    global _service
    if _service is None:
        _service = SearchService()
    return _service


def _reply(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(HEADERS),
        "body": body if isinstance(body, str) else json.dumps(body),
    }


def handler(
    event: Dict[str, Any], context: Any = None, service: Optional[SearchService] = None
) -> Dict[str, Any]:
    method = (event.get("httpMethod") or "").upper()
    if method == "OPTIONS":
        return _reply(200, "")
    if method != "POST":
        return _reply(405, {"error": "Method not allowed"})

    try:
        request = SearchRequest.model_validate(json.loads(event.get("body") or "{}"))
    except (json.JSONDecodeError, ValidationError):
        return _reply(400, {"error": "Invalid request body."})

    try:
        response = (service or get_service()).handle_search(request)
    except SearchError as exc:
        return _reply(exc.status_code, {"error": exc.message})
    except Exception as exc:
        logger.exception("Error in search function")
        return _reply(500, {"error": f"Search failed: {exc}"})

    return _reply(200, response.to_payload())
