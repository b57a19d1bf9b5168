"""Schema exports."""

from app.schemas.patent import (
	AssigneeDetail,
	Classification,
	CompetitorActivity,
	InventorDetail,
	PatentRecord,
	PracticalInsights,
	PracticalUse,
	TechMechanism,
	TopPlayer,
)
from app.schemas.search import ErrorResponse, SearchMetadata, SearchRequest, SearchResponse

__all__ = [
	"AssigneeDetail",
	"Classification",
	"CompetitorActivity",
	"InventorDetail",
	"PatentRecord",
	"PracticalInsights",
	"PracticalUse",
	"TechMechanism",
	"TopPlayer",
	"ErrorResponse",
	"SearchMetadata",
	"SearchRequest",
	"SearchResponse",
]
