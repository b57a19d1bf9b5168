"""FastAPI entrypoint for the patent insight service."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.datastructures import Headers
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from app.api.router import api_router
from app.core.config import Settings, get_settings
from app.core.errors import SearchError

logger = logging.getLogger(__name__)


class SearchCORSMiddleware(CORSMiddleware):
    """Answers accepted preflights with an empty body instead of ``OK``."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def log_environment(settings: Settings) -> None:
    """Report which upstream credentials are present, never their values."""

    logger.info("USPTO API key configured: %s", bool(settings.uspto_api_key))
    logger.info("Gemini API key configured: %s", bool(settings.gemini_api_key))
    if not settings.gemini_api_key:
        logger.warning("Gemini API key not found. AI features will be disabled.")


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""

    settings = get_settings()
    configure_logging(settings.log_level)
    log_environment(settings)

    app = FastAPI(title=settings.app_name, debug=settings.debug)

    if settings.frontend_origin:
        app.add_middleware(
            SearchCORSMiddleware,
            allow_origins=[str(settings.frontend_origin).rstrip("/")],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    elif settings.allowed_hosts:
        app.add_middleware(
            SearchCORSMiddleware,
            allow_origins=settings.allowed_hosts,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(SearchError)
    async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
        logger.info("Search failed with %s: %s", exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        """Simple health-check endpoint."""

        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured port."""

    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
