"""Embedding + cosine-similarity scoring of document pages."""
import json
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from config import BATCH_SIZE, EMBEDDING_MAX_CHARS, MAX_REASONED_PAGES, RELEVANCE_THRESHOLD
from models.ranking import PageScore
from services.compressor import compress
from services.embedding_model import EmbeddingModel
from services.errors import BackendUnavailable, MalformedResponse
from services.llm_client import LLMClient, ModelConfig
from services.model_router import ModelRouter, RouteState
from services.scoring_backend import ScoringBackend, partition

logger = logging.getLogger(__name__)

REASON_SYSTEM_PROMPT = """
You write very short, clear reasons why a given page from a document
is relevant to a user's question. One sentence per page. No fluff.
Return JSON like:
{ "reasons": [ { "page": number, "reason": string }, ... ] }.
""".strip()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    norm = float(np.linalg.norm(vec_a) * np.linalg.norm(vec_b))
    if norm == 0.0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / norm)


def similarity_to_score(similarity: float) -> float:
    """Map a similarity in [-1, 1] onto a relevance score in [0, 100]."""
    return max(0.0, min(100.0, (similarity + 1.0) / 2.0 * 100.0))


class EmbeddingScorer(ScoringBackend):
    """
    Scores pages by embedding similarity to the query.

    Only the best qualifying pages get a natural-language reason, produced by
    one follow-up LLM call routed through the primary/fallback router.
    """

    name = "embedding"

    def __init__(
        self,
        embedding_model: EmbeddingModel,
        llm_client: LLMClient,
        router: ModelRouter,
        threshold: float = RELEVANCE_THRESHOLD,
        max_reasoned_pages: int = MAX_REASONED_PAGES,
        max_chars: int = EMBEDDING_MAX_CHARS,
        batch_size: int = BATCH_SIZE
    ):
        self.embedding_model = embedding_model
        self.llm_client = llm_client
        self.router = router
        self.threshold = threshold
        self.max_reasoned_pages = max_reasoned_pages
        self.max_chars = max_chars
        self.batch_size = batch_size

    def score(self, query: str, pages: Sequence[str]) -> List[PageScore]:
        """
        Score every page by cosine similarity to the query.

        Raises:
            BackendUnavailable: Embedding API failed
            MalformedResponse: Embedding API returned unusable vectors
        """
        cleaned = [compress(text, self.max_chars) for text in pages]
        query_vector, page_vectors = self._embed(query, cleaned)

        scores: List[PageScore] = []
        for page, _ in enumerate(cleaned, start=1):
            vector = page_vectors.get(page)
            if vector is None:
                scores.append(PageScore(page=page, score=0.0))
                continue
            try:
                similarity = cosine_similarity(query_vector, vector)
            except ValueError as e:
                raise MalformedResponse(f"Embedding dimensions do not match for page {page}: {e}")
            scores.append(PageScore(page=page, score=similarity_to_score(similarity)))

        self._attach_reasons(query, scores, cleaned)
        return scores

    def _embed(self, query: str, cleaned: List[str]):
        non_empty = [(page, text) for page, text in enumerate(cleaned, start=1) if text]
        page_vectors: Dict[int, List[float]] = {}

        try:
            query_vector = self.embedding_model.embed_text(query.strip())
            for batch_index, batch in enumerate(partition(non_empty, self.batch_size), start=1):
                vectors = self.embedding_model.embed_batch([text for _, text in batch])
                if not isinstance(vectors, list) or len(vectors) != len(batch):
                    raise MalformedResponse(
                        f"Expected {len(batch)} embeddings, got "
                        f"{len(vectors) if isinstance(vectors, list) else type(vectors).__name__}",
                        batch_index=batch_index
                    )
                for (page, _), vector in zip(batch, vectors):
                    page_vectors[page] = vector
        except RuntimeError as e:
            raise BackendUnavailable(f"Embedding request failed: {e}") from e

        logger.info(f"Embedded query and {len(page_vectors)}/{len(cleaned)} non-empty pages")
        return query_vector, page_vectors

    def _attach_reasons(self, query: str, scores: List[PageScore], cleaned: List[str]) -> None:
        candidates = sorted(
            (s for s in scores if s.score >= self.threshold),
            key=lambda s: s.score,
            reverse=True
        )[:self.max_reasoned_pages]
        if not candidates:
            return

        payload = [
            {"page": s.page, "score": round(s.score), "text": cleaned[s.page - 1]}
            for s in candidates
        ]
        user_prompt = (
            f"User question:\n{query}\n\n"
            "Here are some candidate pages with their scores and text.\n"
            "For each, write ONE short sentence explaining why this page would help "
            "answer the user's question.\n\n"
            f"{json.dumps(payload, indent=2, ensure_ascii=False)}"
        )
        wanted = {s.page for s in candidates}

        def attempt(config: ModelConfig) -> Dict[int, str]:
            response = self.llm_client.complete(REASON_SYSTEM_PROMPT, user_prompt, config)
            if not response.text or not response.text.strip():
                raise BackendUnavailable(f"{config.model} returned no reasons")
            return parse_reasons(response.text, wanted)

        outcome = self.router.route(attempt, label=f"reasons for {len(candidates)} pages")
        if outcome.state is not RouteState.SUCCEEDED:
            logger.warning("Reason generation failed, returning scores without reasons")
            return

        for s in candidates:
            s.reason = outcome.result.get(s.page, "")


def parse_reasons(content: str, wanted: Optional[set] = None) -> Dict[int, str]:
    """
    Parse a `{"reasons": [{"page", "reason"}]}` reply into page -> reason.

    Raises:
        MalformedResponse: Reply is not a JSON object with a reasons list
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Failed to parse reasons JSON: {e}")
    if not isinstance(parsed, dict) or not isinstance(parsed.get("reasons"), list):
        raise MalformedResponse("Reasons output has no 'reasons' list")

    reasons: Dict[int, str] = {}
    for entry in parsed["reasons"]:
        if not isinstance(entry, dict) or not isinstance(entry.get("reason"), str):
            continue
        try:
            page = int(float(entry.get("page")))
        except (TypeError, ValueError, OverflowError):
            continue
        if wanted is None or page in wanted:
            reasons[page] = entry["reason"].strip()
    return reasons
