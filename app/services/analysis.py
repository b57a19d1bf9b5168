"""Patent analysis prompts and best-effort decoding of AI output."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from app.core.config import Settings, get_settings
from app.core.errors import LLMError
from app.schemas.patent import (
    CompetitorActivity,
    PatentRecord,
    PracticalInsights,
    PracticalUse,
    TechMechanism,
    TopPlayer,
)
from app.services.cache import AnalysisCache, canonical_key
from app.services.llm import GeminiClient

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

ANALYSIS_NOT_CONFIGURED = "AI analysis not configured. Please check your Gemini API key."
ANALYSIS_UNAVAILABLE = "AI analysis is temporarily unavailable. Please try again later."
LANDSCAPE_NOT_CONFIGURED = "Landscape analysis not configured. Please check your Gemini API key."
LANDSCAPE_UNAVAILABLE = "Landscape analysis is temporarily unavailable."

INSIGHTS_PATENT_LIMIT = 8
INSIGHTS_ABSTRACT_LIMIT = 400
LANDSCAPE_PATENT_LIMIT = 10

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def load_prompt(name: str) -> Template:
    return Template((PROMPTS_DIR / f"{name}.md").read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Structured decode with typed fallback
# ---------------------------------------------------------------------------


def decode_insights(text: str) -> Optional[PracticalInsights]:
    """Parse the first brace-delimited span of ``text``; None when it is not valid."""

    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        return PracticalInsights.model_validate(json.loads(match.group(0)))
    except (ValueError, RecursionError, ValidationError) as exc:
        logger.warning("Could not parse AI response as insights JSON: %s", exc)
        return None


def fallback_insights(
    text: str, records: Sequence[PatentRecord], search_term: str
) -> PracticalInsights:
    """Deterministic insights built from the raw AI text and the input records."""

    return PracticalInsights(
        tech_breakdown=[
            TechMechanism(
                mechanism="Technology Analysis",
                how_it_works=text[:300],
                key_innovation="See detailed analysis",
            )
        ],
        competitor_activity=CompetitorActivity(
            top_players=[
                TopPlayer(
                    company=record.assignee or "Unknown",
                    focus=record.title[:50] + "...",
                    filing_trend="Analysis needed",
                )
                for record in records[:3]
            ],
            filing_patterns="Detailed analysis available below",
        ),
        practical_uses=[
            PracticalUse(
                application=f"{search_term} applications",
                market_ready="Assessment in progress",
                obstacles="See analysis details",
            )
        ],
        tech_maturity="Analysis in progress",
        interesting_findings=["Detailed analysis available"],
        patent_strength="Requires claim review",
        raw_analysis=text,
    )


def unconfigured_insights() -> PracticalInsights:
    return PracticalInsights()


def failed_insights(error: str) -> PracticalInsights:
    return PracticalInsights(
        competitor_activity=CompetitorActivity(filing_patterns="Analysis failed"),
        tech_maturity="Analysis failed",
        interesting_findings=[f"Analysis error: {error}"],
        patent_strength="Could not assess",
        error=error,
    )


# ---------------------------------------------------------------------------
# Prompt payloads
# ---------------------------------------------------------------------------


def record_key_payload(record: PatentRecord) -> Dict[str, Any]:
    # The analysis field is excluded so enriched copies share the same key.
    return record.model_dump(mode="json", exclude={"analysis"})


def insights_rows(records: Sequence[PatentRecord]) -> List[Dict[str, str]]:
    return [
        {
            "title": record.title,
            "abstract": record.abstract[:INSIGHTS_ABSTRACT_LIMIT],
            "assignee": record.assignee,
            "inventor": record.inventor,
            "filing_date": record.filing_date,
            "classification": record.classification.primary if record.classification else "Unknown",
        }
        for record in records[:INSIGHTS_PATENT_LIMIT]
    ]


def landscape_rows(records: Sequence[PatentRecord]) -> List[Dict[str, str]]:
    return [
        {
            "title": record.title,
            "id": record.patent_id,
            "date": record.publication_date,
            "assignee": record.assignee,
        }
        for record in records[:LANDSCAPE_PATENT_LIMIT]
    ]


# ---------------------------------------------------------------------------
# Analyst
# ---------------------------------------------------------------------------


class PatentAnalyst:
    """Builds analysis prompts, memoizes AI answers and isolates AI failures."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm: Optional[GeminiClient] = None,
        cache: Optional[AnalysisCache] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.llm = llm or GeminiClient(self.settings)
        self.cache = cache or AnalysisCache(
            max_entries=self.settings.cache_max_entries,
            ttl_seconds=self.settings.cache_ttl_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return self.llm.is_configured

    def _generate_cached(self, key: str, prompt: str) -> str:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Analysis cache hit for %s", key)
            return cached
        text = self.llm.generate(prompt)
        self.cache.set(key, text)
        return text

    def analyze(self, record: PatentRecord) -> str:
        """Multi-section business analysis of one patent."""

        if not self.is_configured:
            return ANALYSIS_NOT_CONFIGURED

        prompt = load_prompt("patent_analysis").substitute(
            title=record.title,
            patent_id=record.patent_id,
            publication_date=record.publication_date,
            inventor=record.inventor or "Not available",
            assignee=record.assignee or "Not available",
            abstract=record.abstract or "No abstract available",
        )
        try:
            return self._generate_cached(
                canonical_key("analysis", record_key_payload(record)), prompt
            )
        except LLMError as exc:
            logger.error("AI analysis failed for %s: %s", record.patent_id, exc)
            return ANALYSIS_UNAVAILABLE

    def analyze_structured(
        self, records: Sequence[PatentRecord], search_term: str
    ) -> PracticalInsights:
        """Structured insights over a result set; never raises on bad AI output."""

        if not self.is_configured or not records:
            return unconfigured_insights()

        rows = insights_rows(records)
        prompt = load_prompt("practical_insights").substitute(
            count=len(records),
            search_term=search_term,
            patents=json.dumps(rows, indent=1),
        )
        key = canonical_key("insights", {"term": search_term, "count": len(records), "rows": rows})
        try:
            text = self._generate_cached(key, prompt)
        except LLMError as exc:
            logger.error("Insights analysis failed: %s", exc)
            return failed_insights(str(exc))

        return decode_insights(text) or fallback_insights(text, records, search_term)

    def analyze_landscape(self, records: Sequence[PatentRecord], keywords: str) -> str:
        """Market landscape narrative across the result set."""

        if not self.is_configured:
            return LANDSCAPE_NOT_CONFIGURED

        rows = landscape_rows(records)
        prompt = load_prompt("landscape_analysis").substitute(
            keywords=keywords,
            patents=json.dumps(rows, indent=2),
        )
        try:
            return self._generate_cached(
                canonical_key("landscape", {"keywords": keywords, "rows": rows}), prompt
            )
        except LLMError as exc:
            logger.error("Landscape analysis failed: %s", exc)
            return LANDSCAPE_UNAVAILABLE
