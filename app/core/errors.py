"""Error taxonomy for the search flow.

Each error carries the HTTP status code and the human-readable message that
the transport layer returns as ``{"error": message}``.
"""

from __future__ import annotations

from typing import Optional


class SearchError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(SearchError):
    status_code = 400


class ConfigurationError(SearchError):
    status_code = 500


class UpstreamUnavailable(SearchError):
    """The patent service could not be reached or timed out."""

    status_code = 503


class UpstreamMalformed(UpstreamUnavailable):
    """The patent service answered with a body we cannot read."""

    status_code = 502


class UpstreamRejected(SearchError):
    """The patent service answered with a non-2xx status."""

    def __init__(self, upstream_status: int, detail: Optional[str] = None) -> None:
        self.upstream_status = upstream_status
        if upstream_status in (401, 403):
            super().__init__("Authentication failed. Please check your API key.", 403)
        elif upstream_status == 429:
            super().__init__("Rate limit exceeded. Please try again later.", 429)
        else:
            super().__init__(f"API Error: {detail or 'Unexpected response'}", upstream_status)


class NoResultsError(SearchError):
    status_code = 404


class LLMError(RuntimeError):
    """Raised by the Gemini client; never surfaced to API callers."""
