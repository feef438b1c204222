"""Relevance engine orchestrating page scoring and range aggregation."""
import logging
import time
from typing import Optional, Sequence

from config import RELEVANCE_THRESHOLD
from models.ranking import RankingResult, ScoreRequest
from services.aggregator import aggregate
from services.errors import InputValidationError
from services.scoring_backend import ScoringBackend

logger = logging.getLogger(__name__)


class RelevanceEngine:
    """Validate a request, score every page, and group relevant pages into ranges."""

    def __init__(self, scoring_backend: ScoringBackend, threshold: float = RELEVANCE_THRESHOLD):
        """
        Initialize the relevance engine.

        Args:
            scoring_backend: Rubric or embedding backend producing page scores
            threshold: Minimum score for a page to appear in a range
        """
        self.scoring_backend = scoring_backend
        self.threshold = threshold
        logger.info(f"Initialized RelevanceEngine (backend={scoring_backend.name}, threshold={threshold})")

    def rank(self, query: Optional[str], pages: Optional[Sequence[Optional[str]]]) -> RankingResult:
        """
        Rank document pages against the user's interest.

        1. Validate the query and page list (no backend call on failure)
        2. Score every page through the configured backend
        3. Aggregate pages at or above the threshold into ranges

        Args:
            query: Free-text interest
            pages: Page texts in document order (None entries count as empty pages)

        Returns:
            RankingResult with all page scores (page order) and ranges (most relevant first)

        Raises:
            InputValidationError: Missing query or empty page list
            ScoringError: Backend failed; no partial rankings are returned
        """
        request = self.validate(query, pages)
        start_time = time.time()

        logger.info(
            f"Ranking {len(request.pages)} pages for interest: {request.query[:100]}"
        )
        scores = self.scoring_backend.score(request.query, request.pages)
        ranges = aggregate(scores, self.threshold)

        latency_ms = int((time.time() - start_time) * 1000)
        qualifying = sum(1 for s in scores if s.score >= self.threshold)
        logger.info(
            f"Ranked {len(scores)} pages in {latency_ms}ms: "
            f"{qualifying} relevant pages in {len(ranges)} ranges"
        )
        return RankingResult(scores=scores, ranges=ranges)

    @staticmethod
    def validate(query: Optional[str], pages: Optional[Sequence[Optional[str]]]) -> ScoreRequest:
        """Build a ScoreRequest or raise InputValidationError."""
        if not query or not query.strip():
            raise InputValidationError("Missing 'interest' in request body.")
        if not pages:
            raise InputValidationError("Missing 'pages' array in request body.")
        return ScoreRequest(query=query.strip(), pages=[text or "" for text in pages])
