"""Rubric-based LLM batch scoring of document pages."""
import json
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from config import BATCH_SIZE, RUBRIC_MAX_CHARS
from models.ranking import PageScore
from services.compressor import compress
from services.errors import BackendUnavailable, MalformedResponse
from services.llm_client import LLMClient, ModelConfig
from services.model_router import ModelRouter, RouteState
from services.scoring_backend import ScoringBackend, partition

logger = logging.getLogger(__name__)

RUBRIC = """
Use this relevance scoring system:

90–100 = strong direct match
70–89 = indirect meaningful match
40–69 = weak / tangential match
0–39  = not relevant

Base everything strictly on the provided text.
""".strip()

SYSTEM_PROMPT = """
You return ONLY valid JSON:

{
  "rankings": [
    { "page": number, "score": number, "reason": "short reason" }
  ]
}
""".strip()

INSTRUCTION = "Score each page using the rubric. Return ONLY the JSON."


class RubricBatchScorer(ScoringBackend):
    """Scores pages in fixed-size batches with a rubric prompt and model fallback."""

    name = "rubric"

    def __init__(
        self,
        llm_client: LLMClient,
        router: ModelRouter,
        batch_size: int = BATCH_SIZE,
        max_chars: int = RUBRIC_MAX_CHARS
    ):
        """
        Initialize the batch scorer.

        Args:
            llm_client: LLMClient used for every batch call
            router: ModelRouter holding the primary/fallback configurations
            batch_size: Maximum pages per call
            max_chars: Per-page character bound inside the prompt
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.llm_client = llm_client
        self.router = router
        self.batch_size = batch_size
        self.max_chars = max_chars

    def score(self, query: str, pages: Sequence[str]) -> List[PageScore]:
        """
        Score every page against query.

        Pages are numbered before compression so that numbering survives
        truncation and batching. Batches run sequentially; the first batch
        that fails on both models aborts the whole request.

        Raises:
            BackendUnavailable: Both models failed or returned nothing for a batch
            MalformedResponse: Both models failed and the last reply did not parse
        """
        tagged = [
            {"page": index, "text": compress(text, self.max_chars)}
            for index, text in enumerate(pages, start=1)
        ]
        batches = partition(tagged, self.batch_size)
        logger.info(f"Scoring {len(tagged)} pages in {len(batches)} batches of up to {self.batch_size}")

        results: List[PageScore] = []
        for batch_index, batch in enumerate(batches, start=1):
            results.extend(self._score_batch(query, batch, batch_index, len(batches)))
        return results

    def _score_batch(
        self,
        query: str,
        batch: List[Dict[str, Any]],
        batch_index: int,
        total_batches: int
    ) -> List[PageScore]:
        user_prompt = self.build_user_prompt(query, batch)
        first_page, last_page = batch[0]["page"], batch[-1]["page"]
        label = f"batch {batch_index}/{total_batches} (pages {first_page}-{last_page})"

        def attempt(config: ModelConfig) -> List[PageScore]:
            response = self.llm_client.complete(SYSTEM_PROMPT, user_prompt, config)
            if not response.text or not response.text.strip():
                raise BackendUnavailable(
                    f"{config.model} returned no content", batch_index=batch_index
                )
            return parse_rankings(response.text, [item["page"] for item in batch], batch_index)

        outcome = self.router.route(attempt, label=label)
        if outcome.state is RouteState.SUCCEEDED:
            return outcome.result

        last_error = outcome.last_error
        reason = getattr(last_error, "message", None) or str(last_error)
        details = {
            "first_page": first_page,
            "last_page": last_page,
            "attempts": [
                {"tier": a.tier, "model": a.model_name, "error_code": a.error_code}
                for a in outcome.attempts
            ],
        }
        message = f"Relevance scoring failed for {label}: {reason}"
        if isinstance(last_error, MalformedResponse):
            raise MalformedResponse(message, batch_index=batch_index, details=details)
        raise BackendUnavailable(message, batch_index=batch_index, details=details)

    @staticmethod
    def build_user_prompt(query: str, batch: List[Dict[str, Any]]) -> str:
        """Serialize the topic, rubric and page texts of one batch."""
        payload = {"topic": query, "rubric": RUBRIC, "pages": batch}
        return f"{INSTRUCTION}\n\n{json.dumps(payload, ensure_ascii=False)}"


def parse_rankings(content: str, batch_pages: List[int], batch_index: Optional[int] = None) -> List[PageScore]:
    """
    Parse and reconcile one batch reply.

    Each returned entry is mapped to a page of the batch: its stated page when
    that is numeric, in the batch, and not yet claimed; otherwise the page at
    the entry's position. Pages the reply omitted score 0.

    Args:
        content: Raw model output
        batch_pages: Page numbers of the batch, in order
        batch_index: Batch number for error reporting

    Returns:
        One PageScore per batch page, in batch order

    Raises:
        MalformedResponse: Output is not a JSON object with a usable rankings list
    """
    try:
        parsed = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedResponse(f"Failed to parse relevance output: {e}", batch_index=batch_index)

    if not isinstance(parsed, dict) or not isinstance(parsed.get("rankings"), list):
        raise MalformedResponse("Relevance output has no 'rankings' list", batch_index=batch_index)

    allowed = set(batch_pages)
    by_page: Dict[int, PageScore] = {}
    for position, entry in enumerate(parsed["rankings"]):
        if not isinstance(entry, dict):
            continue
        page = coerce_page(entry.get("page"))
        if page not in allowed or page in by_page:
            page = batch_pages[position] if position < len(batch_pages) else None
            if page is None or page in by_page:
                logger.debug(f"Dropping unmatched ranking entry at position {position}")
                continue
        by_page[page] = PageScore(
            page=page,
            score=coerce_score(entry.get("score")),
            reason=coerce_reason(entry.get("reason")),
        )

    if not by_page:
        raise MalformedResponse("Relevance output contained no usable rankings", batch_index=batch_index)

    missing = [page for page in batch_pages if page not in by_page]
    if missing:
        logger.warning(f"Model omitted {len(missing)} pages, scoring them 0: {missing}")

    return [by_page.get(page) or PageScore(page=page, score=0.0) for page in batch_pages]


def coerce_page(raw: Any) -> Optional[int]:
    """Return raw as a page number, or None when it is not numeric."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
        return int(value) if value.is_integer() else None
    return None


def coerce_score(raw: Any) -> float:
    """Return raw as a score in [0, 100]; unparsable values become 0."""
    if isinstance(raw, bool) or raw is None:
        return 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(100.0, value))


def coerce_reason(raw: Any) -> str:
    if isinstance(raw, str):
        return raw.strip()
    return ""
