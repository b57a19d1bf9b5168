"""Pydantic schemas for normalized patent records and AI insights."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Classification(BaseModel):
    primary: str = "Unknown"
    ipc: str = "Unknown"

    model_config = ConfigDict(frozen=True)


class InventorDetail(BaseModel):
    name: str
    location: str = "Unknown"

    model_config = ConfigDict(frozen=True)


class AssigneeDetail(BaseModel):
    name: str
    type: str = "Organization"

    model_config = ConfigDict(frozen=True)


class PatentRecord(BaseModel):
    """One upstream filing or grant, normalized with documented defaults."""

    patent_id: str = Field(..., min_length=1, description="Application number or temp placeholder.")
    publication_number: str = "N/A"
    title: str = "Title not available"
    inventor: str = "Unknown"
    assignee: str = "Unknown"
    publication_date: str = "Unknown"
    filing_date: str = "Unknown"
    snippet: str = ""
    abstract: str = "Abstract not available"
    status: Optional[str] = None
    classification: Optional[Classification] = None
    inventors_detailed: Optional[List[InventorDetail]] = None
    assignees_detailed: Optional[List[AssigneeDetail]] = None
    analysis: Optional[str] = Field(
        None, description="Per-record AI analysis or placeholder, attached after enrichment."
    )

    model_config = ConfigDict(frozen=True)

    def with_analysis(self, analysis: str) -> "PatentRecord":
        """Return a copy carrying ``analysis``; upstream fields are left untouched."""

        return self.model_copy(update={"analysis": analysis})


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TechMechanism(_CamelModel):
    mechanism: str = ""
    how_it_works: str = Field("", alias="howItWorks")
    key_innovation: str = Field("", alias="keyInnovation")


class TopPlayer(_CamelModel):
    company: str = ""
    focus: str = ""
    filing_trend: str = Field("", alias="filingTrend")


class CompetitorActivity(_CamelModel):
    top_players: List[TopPlayer] = Field(default_factory=list, alias="topPlayers")
    filing_patterns: str = Field("No data available", alias="filingPatterns")


class PracticalUse(_CamelModel):
    application: str = ""
    market_ready: str = Field("", alias="marketReady")
    obstacles: str = ""


class PracticalInsights(_CamelModel):
    """Structured whole-set analysis returned by the insights prompt."""

    tech_breakdown: List[TechMechanism] = Field(default_factory=list, alias="techBreakdown")
    competitor_activity: CompetitorActivity = Field(
        default_factory=CompetitorActivity, alias="competitorActivity"
    )
    practical_uses: List[PracticalUse] = Field(default_factory=list, alias="practicalUses")
    tech_maturity: str = Field("Unknown", alias="techMaturity")
    interesting_findings: List[str] = Field(default_factory=list, alias="interestingFindings")
    patent_strength: str = Field("Assessment needed", alias="patentStrength")
    raw_analysis: Optional[str] = Field(None, alias="rawAnalysis")
    error: Optional[str] = None
