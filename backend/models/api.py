"""Request/response bodies for the public HTTP API."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Accepts both the camelCase wire names and the Python field names."""

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(ApiModel):
    error: str


class ExtractResponse(ApiModel):
    text: str
    pages: List[str]
    doc_type: str = Field(alias="docType")
    chapters: Optional[List[str]] = None


class RelevanceRequest(ApiModel):
    interest: Optional[str] = None
    pages: Optional[List[Optional[str]]] = None
    doc_type: Optional[str] = Field(default=None, alias="docType")
    chapters: Optional[List[Optional[str]]] = None


class Ranking(ApiModel):
    page: int
    score: float
    reason: Optional[str] = ""


class RangeResponse(ApiModel):
    start_page: int = Field(alias="startPage")
    end_page: int = Field(alias="endPage")
    top_score: float = Field(alias="topScore")
    top_reason: str = Field(default="", alias="topReason")
    label: str


class RelevanceResponse(ApiModel):
    rankings: List[Ranking]
    ranges: List[RangeResponse]


class SummaryRequest(ApiModel):
    mode: Optional[str] = None  # "full", "pages" or "relevant"
    doc_pages: Optional[List[Optional[str]]] = Field(default=None, alias="docPages")
    selected_pages: Optional[List[Optional[str]]] = Field(default=None, alias="selectedPages")
    rankings: Optional[List[Ranking]] = None


class SummaryResponse(ApiModel):
    summary: str
