"""Data models for ArcRider Reading Assistant."""
from .document import Document, Page
from .ranking import ScoreRequest, PageScore, RelevantRange, RankingResult
from .api import (
    ErrorResponse,
    ExtractResponse,
    RelevanceRequest,
    Ranking,
    RangeResponse,
    RelevanceResponse,
    SummaryRequest,
    SummaryResponse,
)

__all__ = [
    "Document",
    "Page",
    "ScoreRequest",
    "PageScore",
    "RelevantRange",
    "RankingResult",
    "ErrorResponse",
    "ExtractResponse",
    "RelevanceRequest",
    "Ranking",
    "RangeResponse",
    "RelevanceResponse",
    "SummaryRequest",
    "SummaryResponse",
]
