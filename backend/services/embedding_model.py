"""Page and query embeddings from the Hugging Face Inference API."""
import time
import logging
from typing import Any, List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 60.0


class _RetryableFailure(Exception):
    """Transient API condition worth another attempt."""


class EmbeddingModel:
    """Client for a Hugging Face feature-extraction model."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            max_retries: Attempts per request, counting the first one
            initial_delay: First backoff delay in seconds, doubled after every retry
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = (
            f"https://router.huggingface.co/hf-inference/models/{model_name}"
            f"/pipeline/feature-extraction"
        )

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """Embed one query or page text."""
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._request([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed several texts in one API call.

        The result is index-aligned with texts, so empty entries are rejected
        rather than silently dropped.

        Raises:
            ValueError: If texts list is empty or contains empty strings
            RuntimeError: If the API request fails
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        empty = [i for i, t in enumerate(texts) if not t or not t.strip()]
        if empty:
            raise ValueError(f"Texts at positions {empty} are empty")

        return self._request(list(texts))

    def _request(self, texts: List[str]) -> List[List[float]]:
        """
        POST texts to the feature-extraction endpoint with exponential backoff.

        Sleeping free-tier models answer 503 while they load, so 503 responses,
        timeouts and network errors are retried. 401, 429 and any other
        non-200 status fail immediately.

        Raises:
            RuntimeError: On a non-retryable status or once retries run out
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {"inputs": texts, "options": {"wait_for_model": True}}

        delay = self.initial_delay
        last_error = "no attempt made"

        with httpx.Client(timeout=self.timeout) as client:
            for attempt in range(1, self.max_retries + 1):
                start_time = time.time()
                try:
                    response = client.post(self.api_url, headers=headers, json=payload)
                    embeddings = self._read_response(response, len(texts))
                except _RetryableFailure as e:
                    last_error = str(e)
                except httpx.TimeoutException:
                    last_error = f"Request timeout after {self.timeout}s"
                except httpx.RequestError as e:
                    last_error = f"Network error: {str(e)}"
                else:
                    elapsed = time.time() - start_time
                    logger.debug(f"Embedded {len(texts)} texts in {elapsed:.2f}s (attempt {attempt})")
                    return embeddings

                logger.warning(f"Embedding attempt {attempt}/{self.max_retries} failed: {last_error}")
                if attempt < self.max_retries:
                    time.sleep(delay)
                    delay = min(delay * 2, MAX_BACKOFF_SECONDS)

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    @staticmethod
    def _read_response(response: Any, expected: int) -> List[List[float]]:
        if response.status_code == 503:
            try:
                details = response.json() if response.text else {}
            except ValueError:
                details = {}
            estimated = details.get("estimated_time") if isinstance(details, dict) else None
            raise _RetryableFailure(f"Model loading (503), estimated time: {estimated}s")

        if response.status_code == 429:
            logger.error("Rate limit exceeded for Hugging Face API")
            raise RuntimeError("Rate limit exceeded. Please try again later.")

        if response.status_code == 401:
            logger.error("Authentication failed for Hugging Face API")
            raise RuntimeError("Invalid API key")

        if response.status_code != 200:
            error_msg = f"API request failed with status {response.status_code}: {response.text}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        try:
            embeddings = response.json()
        except ValueError as e:
            logger.error(f"Embedding response is not JSON: {response.text[:200]}")
            raise RuntimeError(f"Embedding response is not valid JSON: {e}") from e
        if not isinstance(embeddings, list) or len(embeddings) != expected:
            raise RuntimeError(
                f"Expected {expected} embeddings, got "
                f"{len(embeddings) if isinstance(embeddings, list) else type(embeddings).__name__}"
            )
        return embeddings

    def warmup(self) -> bool:
        """
        Send one dummy query so a sleeping model is loaded before real traffic.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except (RuntimeError, ValueError) as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
