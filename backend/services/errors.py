"""Error taxonomy for the relevance pipeline and its collaborators."""
from typing import Any, Dict, Optional


class InputValidationError(ValueError):
    """Request is missing required input; no backend call is made."""


class ScoringError(Exception):
    """Scoring failed for a whole request."""

    code = "SCORING_ERROR"

    def __init__(
        self,
        message: str,
        batch_index: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.batch_index = batch_index
        self.details = details or {}
        super().__init__(message)


class BackendUnavailable(ScoringError):
    """Scoring backend failed or returned no content."""

    code = "BACKEND_UNAVAILABLE"


class MalformedResponse(ScoringError):
    """Scoring backend returned content that does not have the expected shape."""

    code = "MALFORMED_RESPONSE"


class ExtractionError(Exception):
    """Document could not be read."""


class UnsupportedFormat(ExtractionError):
    """Declared or detected file format is not PDF, DOCX or EPUB."""


class NoTextFound(ExtractionError):
    """Document was readable but contains no text."""
