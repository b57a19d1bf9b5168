"""Service exports."""

from app.services.analysis import PatentAnalyst
from app.services.cache import AnalysisCache
from app.services.llm import GeminiClient
from app.services.search import SearchService
from app.services.uspto import USPTOClient

__all__ = [
	"AnalysisCache",
	"GeminiClient",
	"PatentAnalyst",
	"SearchService",
	"USPTOClient",
]
