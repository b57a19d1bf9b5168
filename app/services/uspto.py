"""USPTO Open Data Portal client and response normalisation."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamMalformed, UpstreamRejected, UpstreamUnavailable
from app.schemas.patent import AssigneeDetail, Classification, InventorDetail, PatentRecord

LOGGER = logging.getLogger(__name__)

SEARCH_PATH = "/api/v1/patent/applications/search"
SNIPPET_LENGTH = 200

SEARCH_FIELDS = [
    "applicationNumberText",
    "applicationMetaData",
    "patentApplicationPublication",
    "patentGrant",
]

GRANTED_CATEGORY = "Granted/Issued"
PRE_GRANT_CATEGORY = "Pre-Grant Publications - PGPub"


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


def clamp_limit(requested: Optional[int], ceiling: int) -> int:
    if requested is None:
        return ceiling
    return max(1, min(requested, ceiling))


def build_search_payload(
    keywords: str,
    limit: int,
    show_approved: bool = False,
    date_from: str = "2020-01-01",
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Structured query: utility filings in a filing-date window, newest first."""

    category = GRANTED_CATEGORY if show_approved else PRE_GRANT_CATEGORY
    return {
        "q": keywords,
        "filters": [
            {"name": "applicationMetaData.applicationTypeLabelName", "value": ["Utility"]},
            {"name": "applicationMetaData.publicationCategoryBag", "value": [category]},
        ],
        "rangeFilters": [
            {
                "field": "applicationMetaData.filingDate",
                "valueFrom": date_from,
                "valueTo": (today or date.today()).isoformat(),
            }
        ],
        "pagination": {"offset": 0, "limit": limit},
        "sort": [{"field": "applicationMetaData.filingDate", "order": "Desc"}],
        "fields": SEARCH_FIELDS,
    }


def build_keyword_params(keywords: str, limit: int) -> Dict[str, Any]:
    return {
        "q": (
            f"applicationMetaData.inventionTitle:{keywords}* OR "
            f"applicationMetaData.abstractText:{keywords}*"
        ),
        "limit": limit,
    }


# ---------------------------------------------------------------------------
# Response normalisation
# ---------------------------------------------------------------------------


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [value] if value else []


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def make_snippet(abstract: str, length: int = SNIPPET_LENGTH) -> str:
    if len(abstract) > length:
        return abstract[:length] + "..."
    return abstract


def extract_inventors(metadata: Dict[str, Any]) -> List[InventorDetail]:
    inventors: List[InventorDetail] = []
    for entry in _as_list(metadata.get("inventorBag")):
        if not isinstance(entry, dict):
            continue
        name = " ".join(
            part for part in (_text(entry.get("firstName")), _text(entry.get("lastName"))) if part
        )
        name = name or _text(entry.get("inventorNameText")) or "Unknown"
        addresses = _as_list(entry.get("correspondenceAddressBag"))
        address = _as_dict(addresses[0]) if addresses else {}
        location = ", ".join(
            part
            for part in (_text(address.get("cityName")), _text(address.get("geographicRegionName")))
            if part
        )
        inventors.append(InventorDetail(name=name, location=location or "Unknown"))

    if not inventors:
        # Keyword queries return a flat inventorName string or list.
        for name in _as_list(metadata.get("inventorName")):
            text = _text(name)
            if text:
                inventors.append(InventorDetail(name=text))
    return inventors


def extract_assignees(metadata: Dict[str, Any]) -> List[AssigneeDetail]:
    assignees = [
        AssigneeDetail(name=name)
        for name in (
            _text(_as_dict(entry).get("applicantNameText"))
            for entry in _as_list(metadata.get("applicantBag"))
        )
        if name
    ]
    if not assignees:
        fallback = _text(metadata.get("assigneeName")) or _text(
            _as_dict(metadata.get("assignee")).get("name")
        )
        if fallback:
            assignees.append(AssigneeDetail(name=fallback))
    return assignees


def extract_abstract(
    metadata: Dict[str, Any], publication: Dict[str, Any], grant: Dict[str, Any]
) -> str:
    candidates = (
        publication.get("abstract"),
        grant.get("abstract"),
        metadata.get("abstractText"),
        metadata.get("inventionTitle"),
    )
    return next((text for text in map(_text, candidates) if text), "Abstract not available")


def normalize_patent(item: Any, detailed: bool = True) -> PatentRecord:
    """Map one ``patentFileWrapperDataBag`` entry onto a PatentRecord.

    Missing or mistyped fields fall back to documented defaults so a single
    malformed entry never aborts the whole search.
    """

    wrapper = _as_dict(item)
    metadata = _as_dict(wrapper.get("applicationMetaData"))
    publication = _as_dict(wrapper.get("patentApplicationPublication"))
    grant = _as_dict(wrapper.get("patentGrant"))

    application_number = _text(wrapper.get("applicationNumberText"))
    inventors = extract_inventors(metadata)
    assignees = extract_assignees(metadata)
    abstract = extract_abstract(metadata, publication, grant)
    filing_date = _text(metadata.get("filingDate"))

    fields: Dict[str, Any] = {
        "patent_id": application_number or f"temp-{uuid.uuid4().hex[:9]}",
        "publication_number": application_number or "N/A",
        "title": _text(metadata.get("inventionTitle")) or "Title not available",
        "inventor": ", ".join(i.name for i in inventors) or "Unknown",
        "assignee": ", ".join(a.name for a in assignees) or "Unknown",
        "publication_date": (
            _text(metadata.get("publicationDate"))
            or _text(publication.get("publicationDate"))
            or filing_date
            or "Unknown"
        ),
        "filing_date": filing_date or "Unknown",
        "snippet": make_snippet(abstract),
        "abstract": abstract,
    }

    if detailed:
        cpc_codes = [_text(code) for code in _as_list(metadata.get("cpcClassificationBag"))]
        cpc_codes = [code for code in cpc_codes if code]
        fields.update(
            status=_text(metadata.get("applicationStatusDescriptionText")) or "Unknown",
            classification=Classification(
                primary=_text(metadata.get("uspcSymbolText")) or "Unknown",
                ipc=cpc_codes[0] if cpc_codes else "Unknown",
            ),
            inventors_detailed=inventors,
            assignees_detailed=assignees,
        )

    return PatentRecord(**fields)


def extract_wrappers(data: Any) -> List[Any]:
    if not isinstance(data, dict):
        raise UpstreamMalformed("The USPTO API returned an unexpected response.")
    wrappers = data.get("patentFileWrapperDataBag")
    if wrappers is None and data.get("count") == 0:
        return []
    if not isinstance(wrappers, list):
        raise UpstreamMalformed("The USPTO API returned an unexpected response.")
    return wrappers


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class USPTOClient:
    """Client for the USPTO patent application search API."""

    name = "uspto"

    def __init__(
        self, settings: Optional[Settings] = None, client: Optional[httpx.Client] = None
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client or httpx.Client(timeout=self.settings.uspto_timeout_seconds)

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.uspto_api_key)

    @property
    def endpoint(self) -> str:
        return self.settings.uspto_base_url.rstrip("/") + SEARCH_PATH

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.settings.uspto_api_key or "", "Accept": "application/json"}

    def _build_request(
        self, keywords: str, limit: int, show_approved: bool
    ) -> Tuple[str, Dict[str, Any]]:
        if self.settings.query_mode == "keyword":
            return "GET", {"params": build_keyword_params(keywords, limit)}
        payload = build_search_payload(
            keywords,
            limit,
            show_approved=show_approved,
            date_from=self.settings.uspto_filing_date_from,
        )
        return "POST", {"json": payload}

    def search(
        self, keywords: str, max_results: int = 20, show_approved: bool = False
    ) -> List[PatentRecord]:
        limit = clamp_limit(max_results, self.settings.uspto_max_results)
        method, request_kwargs = self._build_request(keywords, limit, show_approved)

        try:
            response = self._client.request(
                method,
                self.endpoint,
                headers=self._headers(),
                timeout=self.settings.uspto_timeout_seconds,
                **request_kwargs,
            )
        except httpx.TimeoutException as exc:
            LOGGER.warning("USPTO search timed out: %s", exc)
            raise UpstreamUnavailable("Request timeout. Please try again.", 504) from exc
        except httpx.RequestError as exc:
            LOGGER.warning("USPTO search failed: %s", exc)
            raise UpstreamUnavailable(
                "The USPTO API is currently unavailable. Please try again later."
            ) from exc

        if not response.is_success:
            LOGGER.warning("USPTO search returned HTTP %s", response.status_code)
            raise UpstreamRejected(response.status_code, _error_detail(response))

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamMalformed("The USPTO API returned an unexpected response.") from exc

        detailed = self.settings.query_mode == "filtered"
        records = [normalize_patent(item, detailed=detailed) for item in extract_wrappers(data)]
        LOGGER.info("USPTO returned %s records for %r", len(records), keywords)
        return records

    def probe(self) -> Dict[str, Any]:
        """Issue a tiny keyword query and report the outcome without raising."""

        result: Dict[str, Any] = {"name": "USPTO ODP applications search"}
        try:
            response = self._client.get(
                self.endpoint,
                params={"q": "apple", "limit": 3},
                headers=self._headers(),
                timeout=15.0,
            )
        except httpx.HTTPError as exc:
            result.update(status="no response", success=False, error=str(exc))
            return result

        result.update(status=response.status_code, success=response.is_success)
        if response.is_success:
            result["data"] = _json_or_text(response)
        else:
            result["error"] = _error_detail(response)
        return result


def _json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_detail(response: httpx.Response) -> str:
    body = _json_or_text(response)
    if isinstance(body, dict):
        message = body.get("message") or body.get("errorMessage") or body.get("error")
        if message:
            return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"
