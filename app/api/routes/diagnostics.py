"""Smoke tests for the upstream credentials."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.dependencies import SearchServiceDep

router = APIRouter(tags=["diagnostics"])


@router.get("/test-uspto")
def probe_uspto(service: SearchServiceDep) -> dict:
    """Run a tiny query against the USPTO search API."""

    return {"results": [service.uspto.probe()]}


@router.get("/test-gemini")
def probe_gemini(service: SearchServiceDep) -> JSONResponse:
    """Send a one-line prompt to Gemini."""

    result = service.analyst.llm.probe()
    return JSONResponse(status_code=200 if result["success"] else 500, content=result)
