"""Services for ArcRider Reading Assistant."""
from .errors import (
    InputValidationError,
    ScoringError,
    BackendUnavailable,
    MalformedResponse,
    ExtractionError,
    UnsupportedFormat,
    NoTextFound,
)
from .compressor import compress
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError, ModelConfig
from .model_router import ModelRouter, RouteState, RouteOutcome
from .scoring_backend import ScoringBackend, build_scoring_backend
from .batch_scorer import RubricBatchScorer
from .embedding_model import EmbeddingModel
from .embedding_scorer import EmbeddingScorer
from .aggregator import aggregate, format_range_label
from .relevance_engine import RelevanceEngine
from .document_loader import DocumentLoader
from .summarizer import Summarizer, select_relevant_pages

__all__ = [
    'InputValidationError', 'ScoringError', 'BackendUnavailable', 'MalformedResponse',
    'ExtractionError', 'UnsupportedFormat', 'NoTextFound', 'compress',
    'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'ModelConfig',
    'ModelRouter', 'RouteState', 'RouteOutcome', 'ScoringBackend', 'build_scoring_backend',
    'RubricBatchScorer', 'EmbeddingModel', 'EmbeddingScorer', 'aggregate', 'format_range_label',
    'RelevanceEngine', 'DocumentLoader', 'Summarizer', 'select_relevant_pages',
]
