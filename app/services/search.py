"""Search orchestration: validate, fetch, enrich and assemble."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import List, Optional

from app.core.config import Settings, get_settings
from app.core.errors import (
    ConfigurationError,
    InvalidRequest,
    NoResultsError,
    SearchError,
)
from app.schemas.patent import PatentRecord, PracticalInsights
from app.schemas.search import SearchMetadata, SearchRequest, SearchResponse
from app.services.analysis import (
    ANALYSIS_NOT_CONFIGURED,
    LANDSCAPE_NOT_CONFIGURED,
    PatentAnalyst,
    failed_insights,
    unconfigured_insights,
)
from app.services.uspto import USPTOClient

logger = logging.getLogger(__name__)

NOT_ANALYZED = "Analysis not performed due to rate limiting."
ANALYSIS_FAILED = "Analysis failed for this patent."
LANDSCAPE_FAILED = "Landscape analysis failed."

DATA_SOURCE = "uspto"


class SearchService:
    """Request handler shared by the FastAPI routes and the serverless handler."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        uspto: Optional[USPTOClient] = None,
        analyst: Optional[PatentAnalyst] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.uspto = uspto or USPTOClient(self.settings)
        self.analyst = analyst or PatentAnalyst(self.settings)

    def handle_search(self, request: SearchRequest) -> SearchResponse:
        keywords = (request.keywords or "").strip()
        if not keywords:
            raise InvalidRequest("No keywords provided.")
        if not self.uspto.is_configured:
            raise ConfigurationError("USPTO API key not configured.")

        patents = self._fetch(keywords, request)
        if not patents:
            raise NoResultsError(
                "No patents found for the given keywords.",
                self.settings.empty_result_status,
            )

        enriched = self.enrich(patents)
        landscape, insights = self._whole_set_analysis(patents, keywords)

        return SearchResponse(
            patents=enriched,
            landscape=landscape,
            insights=insights,
            total=len(patents),
            data_source=DATA_SOURCE,
            metadata=SearchMetadata(
                search_term=keywords,
                results_count=len(patents),
                timestamp=datetime.now(UTC),
                data_source=DATA_SOURCE,
                patent_type="approved" if request.show_approved else "new",
                query_mode=self.settings.query_mode,
            ),
        )

    def _fetch(self, keywords: str, request: SearchRequest) -> List[PatentRecord]:
        try:
            return self.uspto.search(
                keywords,
                max_results=request.max_results,
                show_approved=request.show_approved,
            )
        except SearchError:
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while searching USPTO")
            raise SearchError("An unknown server error occurred.", 500) from exc

    def enrich(self, patents: List[PatentRecord]) -> List[PatentRecord]:
        """Attach per-record analysis to a bounded prefix, placeholders to the rest."""

        if not self.analyst.is_configured:
            return [patent.with_analysis(ANALYSIS_NOT_CONFIGURED) for patent in patents]

        prefix = self.settings.enrichment_prefix
        selected, remaining = patents[:prefix], patents[prefix:]

        analyzed: List[PatentRecord] = []
        if selected:
            with ThreadPoolExecutor(max_workers=len(selected)) as executor:
                futures = [executor.submit(self.analyst.analyze, patent) for patent in selected]
                for patent, future in zip(selected, futures):
                    try:
                        analyzed.append(patent.with_analysis(future.result()))
                    except Exception:
                        logger.exception("Failed to analyze patent %s", patent.patent_id)
                        analyzed.append(patent.with_analysis(ANALYSIS_FAILED))

        return analyzed + [patent.with_analysis(NOT_ANALYZED) for patent in remaining]

    def _whole_set_analysis(
        self, patents: List[PatentRecord], keywords: str
    ) -> tuple[Optional[str], Optional[PracticalInsights]]:
        mode = self.settings.whole_set_analysis
        if mode == "none":
            return None, None

        if mode == "insights":
            if not self.analyst.is_configured:
                return None, unconfigured_insights()
            try:
                return None, self.analyst.analyze_structured(patents, keywords)
            except Exception as exc:
                logger.exception("Insights analysis failed")
                return None, failed_insights(str(exc))

        if not self.analyst.is_configured:
            return LANDSCAPE_NOT_CONFIGURED, None
        try:
            return self.analyst.analyze_landscape(patents, keywords), None
        except Exception:
            logger.exception("Landscape analysis failed")
            return LANDSCAPE_FAILED, None
