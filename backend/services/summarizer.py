"""Document summarisation with the Groq chat API."""
import logging
from typing import List, Optional, Sequence

from config import (
    SUMMARY_MODEL,
    SUMMARY_MAX_INPUT_TOKENS,
    SUMMARY_MAX_OUTPUT_TOKENS,
    RELEVANT_SUMMARY_MIN_SCORE,
    RELEVANT_SUMMARY_MAX_PAGES,
)
from models.ranking import PageScore
from services.errors import InputValidationError
from services.llm_client import LLMClient, ModelConfig

logger = logging.getLogger(__name__)


class Summarizer:
    """Summarises a list of page texts into a TL;DR digest followed by prose."""

    DEFAULT_CONFIG = ModelConfig(
        model=SUMMARY_MODEL,
        max_tokens=SUMMARY_MAX_OUTPUT_TOKENS,
        temperature=0.35,
    )

    def __init__(
        self,
        llm_client: LLMClient,
        encoder=None,
        config: Optional[ModelConfig] = None,
        max_input_tokens: int = SUMMARY_MAX_INPUT_TOKENS
    ):
        """
        Args:
            llm_client: LLMClient used for the summary call
            encoder: tiktoken encoding used to bound the input; no bound when None
            config: Model configuration (defaults to SUMMARY_MODEL at temperature 0.35)
            max_input_tokens: Token budget for the joined page text
        """
        self.llm_client = llm_client
        self.encoder = encoder
        self.config = config or self.DEFAULT_CONFIG
        self.max_input_tokens = max_input_tokens

    def summarize(self, pages: Sequence[str]) -> str:
        """
        Summarise the given pages.

        Raises:
            InputValidationError: No page has any text
            LLMClientError: The summary call failed
        """
        texts = [text for text in pages if text and text.strip()]
        if not texts:
            raise InputValidationError("There is no text to summarise.")

        joined = self._bound("\n\n".join(texts))
        response = self.llm_client.complete(None, self.build_prompt(joined), self.config)
        logger.info(
            f"Summarised {len(texts)} pages: {response.tokens_input} input tokens, "
            f"{response.tokens_output} output tokens"
        )
        return response.text

    def _bound(self, joined: str) -> str:
        if self.encoder is None:
            return joined
        tokens = self.encoder.encode(joined)
        if len(tokens) <= self.max_input_tokens:
            return joined
        logger.warning(
            f"Summary input has {len(tokens)} tokens, truncating to {self.max_input_tokens}"
        )
        return self.encoder.decode(tokens[:self.max_input_tokens])

    @staticmethod
    def build_prompt(joined: str) -> str:
        return f"""You will summarise book / document content.

RULES:
- At the top, output a section titled "TL;DR" with 3–8 short bullet points.
- After that, output a section titled "Summary".
- The full summary must be equivalent to **no more than ~20 pages** of text.
- Focus on the core ideas, main arguments, key events, and important insights.
- Write in clear, modern, easy-to-understand English.
- Avoid flowery language or filler.
- Do NOT just give a plot synopsis; capture the *meaning* and *concepts*.

Text to summarise:

{joined}"""


def select_relevant_pages(
    pages: Sequence[str],
    rankings: Sequence[PageScore],
    min_score: float = RELEVANT_SUMMARY_MIN_SCORE,
    limit: int = RELEVANT_SUMMARY_MAX_PAGES
) -> List[str]:
    """
    Pick the texts of the best-ranked pages for a "summarise relevant" request.

    Returns:
        Up to limit page texts scoring at least min_score, most relevant first;
        rankings that point outside the document or at empty pages are skipped
    """
    best = sorted(
        (r for r in rankings if r.score >= min_score),
        key=lambda r: r.score,
        reverse=True
    )
    selected: List[str] = []
    for r in best:
        if len(selected) >= limit:
            break
        if 1 <= r.page <= len(pages) and pages[r.page - 1]:
            selected.append(pages[r.page - 1])
    return selected
