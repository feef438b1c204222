"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, LLM_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelConfig:
    """Named model configuration for one chat-completion call."""
    model: str
    max_tokens: int = 1000
    temperature: Optional[float] = None
    reasoning_effort: Optional[str] = None  # only sent to reasoning models
    json_mode: bool = False


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for interfacing with Groq API for chat completions."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = LLM_TIMEOUT_SECONDS):
        """
        Initialize LLM client with Groq API key.

        Constructed once per process and passed to the services that need it.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            timeout: Per-call timeout in seconds; expiry surfaces as TIMEOUT_ERROR
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.timeout = timeout
        self.client = Groq(api_key=self.api_key, timeout=timeout)
        logger.info(f"LLMClient initialized successfully (timeout={timeout}s)")

    def complete(
        self,
        system_prompt: Optional[str],
        user_prompt: str,
        config: ModelConfig
    ) -> LLMResponse:
        """
        Run one chat completion.

        Args:
            system_prompt: Optional system message
            user_prompt: User message content
            config: Model name, token budget and sampling knobs

        Returns:
            LLMResponse with text ("" when the model returned no content),
            token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        params: Dict[str, Any] = {
            "model": config.model,
            "messages": messages,
            "max_tokens": config.max_tokens,
        }
        if config.temperature is not None:
            params["temperature"] = config.temperature
        if config.reasoning_effort:
            params["reasoning_effort"] = config.reasoning_effort
        if config.json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            logger.debug(f"Requesting completion with model: {config.model}")

            response = self.client.chat.completions.create(**params)

            latency_ms = int((time.time() - start_time) * 1000)

            text = ""
            if response.choices:
                text = response.choices[0].message.content or ""

            usage = response.usage
            tokens_input = usage.prompt_tokens if usage else 0
            tokens_output = usage.completion_tokens if usage else 0

            logger.info(
                f"Completion finished: model={config.model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=config.model
            )

        except RateLimitError as e:
            self._fail(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                config, start_time, e,
                retry_after=60
            )
        except AuthenticationError as e:
            self._fail(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                config, start_time, e
            )
        except APITimeoutError as e:
            self._fail(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                config, start_time, e
            )
        except APIError as e:
            self._fail(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                config, start_time, e
            )
        except Exception as e:
            self._fail(
                "UNKNOWN_ERROR",
                f"Unexpected error during completion: {str(e)}",
                config, start_time, e,
                error_type=type(e).__name__
            )

    @staticmethod
    def _fail(
        code: str,
        message: str,
        config: ModelConfig,
        start_time: float,
        original: Exception,
        **extra_details: Any
    ) -> None:
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {
            "model": config.model,
            "latency_ms": latency_ms,
            "original_error": str(original),
        }
        details.update(extra_details)
        error = LLMError(code=code, message=message, details=details)
        logger.error(
            f"{code}: model={config.model}, latency={latency_ms}ms, error={original}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        raise LLMClientError(error) from original
