"""
Model Router for ArcRider Reading Assistant.

Routes a single backend request through a primary model configuration and, when
that attempt fails, exactly one fallback configuration. The escalation is an
explicit state machine:

    NOT_STARTED -> PRIMARY_ATTEMPTED -> SUCCEEDED
                                     -> FALLBACK_ATTEMPTED -> SUCCEEDED
                                                           -> FAILED
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, List, Optional, TypeVar
import logging

from config import (
    PRIMARY_SCORING_MODEL,
    PRIMARY_REASONING_EFFORT,
    FALLBACK_SCORING_MODEL,
)
from services.errors import ScoringError
from services.llm_client import LLMClientError, ModelConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RouteState(str, Enum):
    """Progress of one routed request."""
    NOT_STARTED = "not_started"
    PRIMARY_ATTEMPTED = "primary_attempted"
    FALLBACK_ATTEMPTED = "fallback_attempted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RouteAttempt:
    """
    Record of one model attempt.

    Attributes:
        tier: Either "primary" or "fallback"
        model_name: Model that was called
        error_code: Failure code, None when the attempt succeeded
        error_message: Failure description, None when the attempt succeeded
    """
    tier: str
    model_name: str
    error_code: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class RouteOutcome(Generic[T]):
    """
    Result of routing one request.

    Attributes:
        state: SUCCEEDED or FAILED once routing is over
        result: Value returned by the successful attempt
        model_used: Model of the successful attempt
        attempts: Every attempt made, in order
        last_error: Exception raised by the final failed attempt
    """
    state: RouteState = RouteState.NOT_STARTED
    result: Optional[T] = None
    model_used: Optional[str] = None
    attempts: List[RouteAttempt] = field(default_factory=list)
    last_error: Optional[Exception] = None

    @property
    def used_fallback(self) -> bool:
        return len(self.attempts) > 1


class ModelRouter:
    """
    Two-tier primary/fallback router.

    The primary configuration is fast and cheap (low reasoning effort); the
    fallback is a different, conservative configuration (temperature 0). Any
    LLMClientError (including timeouts) or ScoringError (empty or unparsable
    content) raised by an attempt escalates to the fallback. Other exceptions
    are programming errors and propagate untouched.
    """

    PRIMARY = "primary"
    FALLBACK = "fallback"

    PRIMARY_CONFIG = ModelConfig(
        model=PRIMARY_SCORING_MODEL,
        max_tokens=2000,
        reasoning_effort=PRIMARY_REASONING_EFFORT or None,
        json_mode=True,
    )
    FALLBACK_CONFIG = ModelConfig(
        model=FALLBACK_SCORING_MODEL,
        max_tokens=1000,
        temperature=0.0,
        json_mode=True,
    )

    ROUTABLE_ERRORS = (LLMClientError, ScoringError)

    def __init__(
        self,
        primary: Optional[ModelConfig] = None,
        fallback: Optional[ModelConfig] = None
    ):
        self.primary = primary or self.PRIMARY_CONFIG
        self.fallback = fallback or self.FALLBACK_CONFIG
        logger.info(
            f"Initialized ModelRouter (primary={self.primary.model}, "
            f"fallback={self.fallback.model})"
        )

    def route(self, attempt: Callable[[ModelConfig], T], label: str = "request") -> RouteOutcome[T]:
        """
        Run attempt against the primary configuration, then the fallback once.

        Args:
            attempt: Callable performing the backend call for a configuration
                and returning the parsed result; raises on failure
            label: Short description used in log lines

        Returns:
            RouteOutcome in state SUCCEEDED or FAILED
        """
        outcome: RouteOutcome[T] = RouteOutcome()

        for tier, config, state in (
            (self.PRIMARY, self.primary, RouteState.PRIMARY_ATTEMPTED),
            (self.FALLBACK, self.fallback, RouteState.FALLBACK_ATTEMPTED),
        ):
            outcome.state = state
            try:
                result = attempt(config)
            except self.ROUTABLE_ERRORS as e:
                code, message = self._describe(e)
                outcome.attempts.append(RouteAttempt(tier, config.model, code, message))
                outcome.last_error = e
                logger.warning(
                    f"{label}: {tier} model {config.model} failed ({code}): {message}"
                )
                continue

            outcome.attempts.append(RouteAttempt(tier, config.model))
            outcome.result = result
            outcome.model_used = config.model
            outcome.state = RouteState.SUCCEEDED
            if tier == self.FALLBACK:
                logger.info(f"{label}: recovered with fallback model {config.model}")
            return outcome

        outcome.state = RouteState.FAILED
        logger.error(f"{label}: primary and fallback models both failed")
        return outcome

    @staticmethod
    def _describe(error: Exception):
        if isinstance(error, LLMClientError):
            return error.error.code, error.error.message
        return error.code, str(error)
