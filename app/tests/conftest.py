"""Shared fixtures for the test-suite."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from app.core.config import Settings
from app.schemas.patent import PatentRecord


class StubLLM:
    """Records prompts and replays a fixed answer (or failure)."""

    def __init__(
        self,
        text: str = "Generated analysis",
        configured: bool = True,
        error: Optional[Exception] = None,
    ) -> None:
        self.text = text
        self.configured = configured
        self.error = error
        self.prompts: List[str] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def factory(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {
            "uspto_api_key": "uspto-key",
            "gemini_api_key": "gemini-key",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def make_record() -> Callable[..., PatentRecord]:
    def factory(index: int = 1, **overrides: Any) -> PatentRecord:
        values: Dict[str, Any] = {
            "patent_id": f"1700000{index}",
            "publication_number": f"1700000{index}",
            "title": f"Battery electrode {index}",
            "inventor": "Ada Lovelace",
            "assignee": "Acme Energy",
            "publication_date": "2023-01-05",
            "filing_date": "2022-06-01",
            "snippet": "A solid-state electrode.",
            "abstract": "A solid-state electrode.",
        }
        values.update(overrides)
        return PatentRecord(**values)

    return factory


@pytest.fixture
def make_llm() -> Callable[..., StubLLM]:
    return StubLLM


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def uspto_wrapper() -> Dict[str, Any]:
    return {
        "applicationNumberText": "18123456",
        "applicationMetaData": {
            "inventionTitle": "Solid-state battery electrode",
            "filingDate": "2023-02-14",
            "publicationDate": "2023-08-17",
            "applicationStatusDescriptionText": "Docketed New Case - Ready for Examination",
            "uspcSymbolText": "429/209",
            "cpcClassificationBag": ["H01M4/13", "H01M10/0562"],
            "inventorBag": [
                {
                    "firstName": "Ada",
                    "lastName": "Lovelace",
                    "correspondenceAddressBag": [
                        {"cityName": "London", "geographicRegionName": "GB"}
                    ],
                },
                {"firstName": "Alan", "lastName": "Turing"},
            ],
            "applicantBag": [
                {"applicantNameText": "Acme Energy Inc."},
                {"applicantNameText": "Volta Labs"},
            ],
        },
        "patentApplicationPublication": {"abstract": "An electrode with a sulfide electrolyte."},
    }
