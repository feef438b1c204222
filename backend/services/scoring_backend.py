"""Scoring backend capability shared by the rubric and embedding scorers."""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, TypeVar

from models.ranking import PageScore

logger = logging.getLogger(__name__)

T = TypeVar("T")

RUBRIC = "rubric"
EMBEDDING = "embedding"


class ScoringBackend(ABC):
    """Scores every page of a document against a query."""

    name = "base"

    @abstractmethod
    def score(self, query: str, pages: Sequence[str]) -> List[PageScore]:
        """
        Score pages against query.

        Returns:
            Exactly one PageScore per input page, numbered from 1 in input order

        Raises:
            ScoringError: If the backend could not produce scores
        """


def partition(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive batches of at most size elements."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def build_scoring_backend(
    name: str,
    llm_client,
    router,
    embedding_model: Optional[object] = None
) -> ScoringBackend:
    """
    Create the configured scoring backend.

    Args:
        name: "rubric" or "embedding"
        llm_client: LLMClient used for rubric scoring or reasons
        router: ModelRouter with primary/fallback configurations
        embedding_model: EmbeddingModel, required for the embedding backend

    Raises:
        ValueError: For an unknown backend name or a missing embedding model
    """
    # Imported here so each scorer module can import partition from this one
    from services.batch_scorer import RubricBatchScorer
    from services.embedding_scorer import EmbeddingScorer

    normalized = (name or "").strip().lower()
    if normalized == RUBRIC:
        backend: ScoringBackend = RubricBatchScorer(llm_client, router)
    elif normalized == EMBEDDING:
        if embedding_model is None:
            raise ValueError("The embedding scoring backend requires an embedding model")
        backend = EmbeddingScorer(embedding_model, llm_client, router)
    else:
        raise ValueError(f"Unknown scoring backend: {name!r} (expected 'rubric' or 'embedding')")

    logger.info(f"Using scoring backend: {backend.name}")
    return backend
