"""Tests for the search orchestrator and the HTTP surface."""

from __future__ import annotations

import threading
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_search_service
from app.core.errors import (
    ConfigurationError,
    InvalidRequest,
    NoResultsError,
    SearchError,
    UpstreamRejected,
)
from app.main import app
from app.schemas.search import SearchRequest
from app.services.analysis import ANALYSIS_NOT_CONFIGURED, LANDSCAPE_NOT_CONFIGURED, PatentAnalyst
from app.services.cache import AnalysisCache
from app.services.search import (
    ANALYSIS_FAILED,
    NOT_ANALYZED,
    SearchService,
)
from app.services.uspto import USPTOClient


class StubUSPTO:
    def __init__(self, records=None, error=None, configured=True):
        self.records = records or []
        self.error = error
        self.configured = configured
        self.calls = []

    @property
    def is_configured(self):
        return self.configured

    def search(self, keywords, max_results=20, show_approved=False):
        self.calls.append((keywords, max_results, show_approved))
        if self.error is not None:
            raise self.error
        return list(self.records)


class StubAnalyst:
    def __init__(self, configured=True, fail_for=()):
        self.configured = configured
        self.fail_for = set(fail_for)
        self.analyzed = []
        self.landscape_calls = 0
        self._lock = threading.Lock()

    @property
    def is_configured(self):
        return self.configured

    def analyze(self, record):
        with self._lock:
            self.analyzed.append(record.patent_id)
        if record.patent_id in self.fail_for:
            raise RuntimeError("model overloaded")
        return f"analysis of {record.patent_id}"

    def analyze_landscape(self, records, keywords):
        self.landscape_calls += 1
        return f"landscape of {len(records)} for {keywords}"


@pytest.fixture
def service_factory(make_settings, make_record):
    def factory(count=5, analyst=None, uspto=None, **settings):
        records = [make_record(i) for i in range(count)]
        return SearchService(
            make_settings(**settings),
            uspto=uspto or StubUSPTO(records),
            analyst=analyst or StubAnalyst(),
        )

    return factory


@pytest.mark.parametrize("count, prefix", [(5, 3), (2, 3), (7, 5), (4, 0)])
def test_only_the_prefix_is_analyzed(service_factory, count, prefix):
    analyst = StubAnalyst()
    service = service_factory(count=count, analyst=analyst, enrichment_prefix=prefix)

    response = service.handle_search(SearchRequest(keywords="battery"))

    analyses = [p.analysis for p in response.patents]
    analyzed = min(count, prefix)
    assert analyses[:analyzed] == [f"analysis of {p.patent_id}" for p in response.patents[:analyzed]]
    assert analyses[analyzed:] == [NOT_ANALYZED] * max(0, count - prefix)
    assert sorted(analyst.analyzed) == sorted(p.patent_id for p in response.patents[:analyzed])
    assert response.total == count


def test_missing_ai_key_uses_placeholders_without_calls(service_factory, make_settings, make_llm):
    llm = make_llm(configured=False)
    settings = make_settings(gemini_api_key=None)
    analyst = PatentAnalyst(settings, llm=llm, cache=AnalysisCache())
    service = service_factory(analyst=analyst, gemini_api_key=None)

    response = service.handle_search(SearchRequest(keywords="battery"))

    assert {p.analysis for p in response.patents} == {ANALYSIS_NOT_CONFIGURED}
    assert response.landscape == LANDSCAPE_NOT_CONFIGURED
    assert llm.prompts == []


def test_individual_analysis_failure_is_isolated(service_factory, make_record):
    analyst = StubAnalyst(fail_for={make_record(1).patent_id})
    service = service_factory(count=3, analyst=analyst)

    response = service.handle_search(SearchRequest(keywords="battery"))

    assert response.patents[1].analysis == ANALYSIS_FAILED
    assert response.patents[0].analysis.startswith("analysis of")
    assert response.patents[2].analysis.startswith("analysis of")


class BarrierAnalyst(StubAnalyst):
    """Each analyze call blocks until every prefix call is in flight."""

    def __init__(self, parties, fail_for=()):
        super().__init__(fail_for=fail_for)
        self.barrier = threading.Barrier(parties, timeout=5)

    def analyze(self, record):
        self.barrier.wait()
        return super().analyze(record)


def test_prefix_is_analyzed_concurrently_and_settles_all(service_factory, make_record):
    analyst = BarrierAnalyst(3, fail_for={make_record(1).patent_id})
    service = service_factory(count=5, analyst=analyst, enrichment_prefix=3)

    response = service.handle_search(SearchRequest(keywords="battery"))

    assert not analyst.barrier.broken
    analyses = [p.analysis for p in response.patents]
    assert analyses[0] == f"analysis of {response.patents[0].patent_id}"
    assert analyses[1] == ANALYSIS_FAILED
    assert analyses[2] == f"analysis of {response.patents[2].patent_id}"
    assert analyses[3:] == [NOT_ANALYZED, NOT_ANALYZED]
    assert len(analyst.analyzed) == 3


def test_enrichment_does_not_mutate_upstream_records(make_settings, make_record):
    records = [make_record(i) for i in range(4)]
    service = SearchService(make_settings(), uspto=StubUSPTO(records), analyst=StubAnalyst())

    response = service.handle_search(SearchRequest(keywords="battery"))

    assert all(record.analysis is None for record in records)
    assert [p.patent_id for p in response.patents] == [r.patent_id for r in records]


def test_landscape_and_metadata(service_factory):
    analyst = StubAnalyst()
    service = service_factory(count=4, analyst=analyst)

    response = service.handle_search(SearchRequest(keywords="  battery  ", show_approved=True))

    assert response.landscape == "landscape of 4 for battery"
    assert response.insights is None
    assert response.metadata.search_term == "battery"
    assert response.metadata.patent_type == "approved"
    assert response.metadata.results_count == 4
    assert response.data_source == "uspto"
    assert analyst.landscape_calls == 1


def test_insights_mode_runs_structured_analysis(service_factory, make_settings, make_llm):
    settings = make_settings(whole_set_analysis="insights")
    llm = make_llm(text="plain words")
    analyst = PatentAnalyst(settings, llm=llm, cache=AnalysisCache())
    service = service_factory(count=2, analyst=analyst, whole_set_analysis="insights")

    payload = service.handle_search(SearchRequest(keywords="battery")).to_payload()

    assert "landscape" not in payload
    assert payload["insights"]["rawAnalysis"] == "plain words"


def test_request_is_forwarded_to_uspto(service_factory):
    uspto = StubUSPTO([])
    service = service_factory(uspto=uspto)
    with pytest.raises(NoResultsError):
        service.handle_search(SearchRequest(keywords="battery", maxResults=7, showApproved=True))
    assert uspto.calls == [("battery", 7, True)]


@pytest.mark.parametrize("keywords", [None, "", "   "])
def test_blank_keywords_are_rejected(service_factory, keywords):
    with pytest.raises(InvalidRequest) as excinfo:
        service_factory().handle_search(SearchRequest(keywords=keywords))
    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "No keywords provided."


def test_missing_uspto_key_is_configuration_error(service_factory):
    service = service_factory(uspto=StubUSPTO(configured=False))
    with pytest.raises(ConfigurationError) as excinfo:
        service.handle_search(SearchRequest(keywords="battery"))
    assert excinfo.value.status_code == 500


@pytest.mark.parametrize("status_code", [404, 500])
def test_empty_result_status_is_configurable(service_factory, status_code):
    service = service_factory(count=0, empty_result_status=status_code)
    with pytest.raises(NoResultsError) as excinfo:
        service.handle_search(SearchRequest(keywords="battery"))
    assert excinfo.value.status_code == status_code


def test_unexpected_upstream_error_becomes_500(service_factory):
    service = service_factory(uspto=StubUSPTO(error=KeyError("boom")))
    with pytest.raises(SearchError) as excinfo:
        service.handle_search(SearchRequest(keywords="battery"))
    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "An unknown server error occurred."


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def override(service):
    app.dependency_overrides[get_search_service] = lambda: service


def test_healthcheck(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_endpoint_returns_camel_case_payload(client, service_factory):
    override(service_factory(count=4))

    response = client.post("/search", json={"keywords": "battery", "maxResults": 4})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 4
    assert body["dataSource"] == "uspto"
    assert body["metadata"]["searchTerm"] == "battery"
    assert body["metadata"]["patentType"] == "new"
    assert body["patents"][3]["analysis"] == NOT_ANALYZED
    assert "insights" not in body
    assert "status" not in body["patents"][0]


@pytest.mark.parametrize("body", [{"keywords": ""}, {"keywords": "   "}, {}])
def test_search_endpoint_rejects_blank_keywords(client, service_factory, body):
    override(service_factory())
    response = client.post("/search", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "No keywords provided."}


def test_search_endpoint_rejects_malformed_body(client, service_factory):
    override(service_factory())
    response = client.post("/search", json={"keywords": "battery", "maxResults": "lots"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body."}


@pytest.mark.parametrize(
    "upstream_status, expected_status, message",
    [
        (429, 429, "Rate limit exceeded. Please try again later."),
        (401, 403, "Authentication failed. Please check your API key."),
    ],
)
def test_upstream_errors_map_to_status_codes(
    client, make_settings, mock_http, upstream_status, expected_status, message
):
    settings = make_settings()
    uspto = USPTOClient(
        settings, client=mock_http(lambda r: httpx.Response(upstream_status, json={}))
    )
    override(SearchService(settings, uspto=uspto, analyst=StubAnalyst()))

    response = client.post("/search", json={"keywords": "battery"})

    assert response.status_code == expected_status
    assert response.json() == {"error": message}


def test_no_results_returns_error_body(client, service_factory):
    override(service_factory(count=0))
    response = client.post("/search", json={"keywords": "battery"})
    assert response.status_code == 404
    assert response.json() == {"error": "No patents found for the given keywords."}


def test_options_request_returns_cors_headers(client):
    response = client.options("/search")
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"


def test_browser_preflight_returns_empty_body(client):
    response = client.options(
        "/search",
        headers={
            "Origin": "https://app.example.test",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_diagnostics_routes(client, service_factory, make_settings, mock_http):
    settings = make_settings()
    uspto = USPTOClient(settings, client=mock_http(lambda r: httpx.Response(200, json={"count": 0})))
    analyst = SimpleNamespace(llm=SimpleNamespace(probe=lambda: {"success": False, "error": "nope"}))
    override(SearchService(settings, uspto=uspto, analyst=analyst))

    uspto_result = client.get("/test-uspto").json()["results"][0]
    assert uspto_result["success"] is True
    assert uspto_result["data"] == {"count": 0}

    gemini = client.get("/test-gemini")
    assert gemini.status_code == 500
    assert gemini.json()["error"] == "nope"


def test_rejected_error_keeps_upstream_status():
    error = UpstreamRejected(502, "Bad Gateway")
    assert error.status_code == 502
    assert error.message == "API Error: Bad Gateway"
