"""Application configuration via environment variables."""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = Field("Patent Insight Service", description="Human-readable service name.")
    environment: str = Field("dev", description="Deployment environment tag.")
    debug: bool = Field(False, description="Enable FastAPI debug mode.")
    log_level: str = Field("INFO", description="Root logging level.")
    port: int = Field(3000, description="Listening port for the persistent server.")

    api_prefix: str = Field("", description="Root prefix for search and diagnostic routes.")
    frontend_origin: Optional[HttpUrl] = Field(
        None, description="Optional frontend origin allowed for CORS policies."
    )
    allowed_hosts: List[str] = Field(
        default_factory=lambda: ["*"], description="Hosts allowed to access the service."
    )

    uspto_api_key: Optional[str] = Field(
        None, description="API key for the USPTO Open Data Portal."
    )
    uspto_base_url: str = Field(
        "https://api.uspto.gov", description="Base URL of the USPTO Open Data Portal."
    )
    uspto_timeout_seconds: float = Field(20.0, description="Timeout for USPTO search calls.")
    uspto_max_results: int = Field(
        25, description="Upstream ceiling applied to the caller's maxResults."
    )
    uspto_filing_date_from: str = Field(
        "2020-01-01", description="Lower bound of the filing-date range filter."
    )
    query_mode: Literal["filtered", "keyword"] = Field(
        "filtered",
        description="'filtered' posts a structured query; 'keyword' issues a plain GET.",
    )

    gemini_api_key: Optional[str] = Field(
        None, description="API key for the Gemini generateContent endpoint."
    )
    gemini_base_url: str = Field(
        "https://generativelanguage.googleapis.com",
        description="Base URL of the Gemini REST API.",
    )
    gemini_model: str = Field("gemini-2.0-flash", description="Gemini model name.")
    gemini_timeout_seconds: float = Field(30.0, description="Timeout for Gemini calls.")

    enrichment_prefix: int = Field(
        3, ge=0, description="Number of leading records analyzed individually."
    )
    whole_set_analysis: Literal["landscape", "insights", "none"] = Field(
        "landscape",
        description="Analysis run once over the full result set.",
    )
    empty_result_status: int = Field(
        404, description="HTTP status returned when the search yields no patents (404 or 500)."
    )

    cache_max_entries: int = Field(
        512, ge=1, description="Maximum number of memoized AI responses."
    )
    cache_ttl_seconds: Optional[float] = Field(
        None, description="Optional lifetime of memoized AI responses."
    )

    @field_validator("empty_result_status")
    @classmethod
    def _check_empty_result_status(cls, value: int) -> int:
        if value not in (404, 500):
            raise ValueError("empty_result_status must be 404 or 500")
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache()
def get_settings() -> Settings:
    """Provide a cached Settings instance."""

    return Settings()
