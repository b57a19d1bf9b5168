"""Schemas for the search endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.patent import PatentRecord, PracticalInsights


class SearchRequest(BaseModel):
    keywords: Optional[str] = Field(None, description="Free-text search term.")
    max_results: int = Field(20, alias="maxResults", description="Requested number of records.")
    show_approved: bool = Field(
        False,
        alias="showApproved",
        description="Search granted patents instead of pre-grant publications.",
    )

    model_config = ConfigDict(populate_by_name=True)


class SearchMetadata(BaseModel):
    search_term: str = Field(..., alias="searchTerm")
    results_count: int = Field(..., alias="resultsCount")
    timestamp: datetime
    data_source: str = Field(..., alias="dataSource")
    patent_type: str = Field(..., alias="patentType")
    query_mode: str = Field(..., alias="queryMode")

    model_config = ConfigDict(populate_by_name=True)


class SearchResponse(BaseModel):
    patents: List[PatentRecord]
    landscape: Optional[str] = None
    insights: Optional[PracticalInsights] = None
    total: int
    data_source: str = Field(..., alias="dataSource")
    metadata: SearchMetadata

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict:
        """Return the JSON-ready body with camelCase keys and without empty optionals."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    error: str
