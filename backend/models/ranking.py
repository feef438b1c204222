"""Relevance ranking data models."""
from dataclasses import dataclass, field
from typing import List, Sequence


@dataclass(frozen=True)
class ScoreRequest:
    """A query ("interest") plus the ordered page texts to score against it."""
    query: str
    pages: Sequence[str]


@dataclass
class PageScore:
    """Relevance of one page to the query."""
    page: int  # 1-indexed, matches the original page position
    score: float  # 0.0 to 100.0
    reason: str = ""


@dataclass
class RelevantRange:
    """A maximal run of consecutive pages that passed the relevance threshold."""
    start_page: int
    end_page: int
    top_score: float
    top_reason: str = ""


@dataclass
class RankingResult:
    """Output of one relevance run."""
    scores: List[PageScore] = field(default_factory=list)  # page order
    ranges: List[RelevantRange] = field(default_factory=list)  # most relevant first
