"""Aggregate API router for the FastAPI application."""

from fastapi import APIRouter

from app.api.routes import diagnostics, search

api_router = APIRouter()
api_router.include_router(search.router)
api_router.include_router(diagnostics.router)
