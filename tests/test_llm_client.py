"""Unit tests for LLMClient."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch
from services.llm_client import LLMClient, LLMResponse, LLMClientError, ModelConfig
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError


JSON_CONFIG = ModelConfig(
    model="openai/gpt-oss-20b",
    max_tokens=2000,
    reasoning_effort="low",
    json_mode=True,
)
PLAIN_CONFIG = ModelConfig(model="llama-3.3-70b-versatile", max_tokens=500, temperature=0.0)


def _groq_returning(content, prompt_tokens=150, completion_tokens=12):
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    mock_response.usage = Mock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)

    mock_client = Mock()
    mock_client.chat.completions.create.return_value = mock_response
    return mock_client


def _groq_raising(error):
    mock_client = Mock()
    mock_client.chat.completions.create.side_effect = error
    return mock_client


class TestLLMClient:
    """Test suite for LLMClient class."""

    def test_initialization_with_api_key(self):
        """Test LLMClient initializes with provided API key."""
        client = LLMClient(api_key="test_key")
        assert client.api_key == "test_key"

    def test_initialization_without_api_key_raises_error(self):
        """Test LLMClient raises error when no API key provided."""
        with patch('services.llm_client.GROQ_API_KEY', None):
            with pytest.raises(ValueError, match="GROQ_API_KEY must be provided"):
                LLMClient()

    @patch('services.llm_client.Groq')
    def test_timeout_is_passed_to_sdk(self, mock_groq_class):
        """Test the per-call timeout is configured on the Groq client."""
        LLMClient(api_key="test_key", timeout=12.5)

        mock_groq_class.assert_called_once_with(api_key="test_key", timeout=12.5)

    @patch('services.llm_client.Groq')
    def test_complete_success(self, mock_groq_class):
        """Test successful completion."""
        mock_groq_class.return_value = _groq_returning('{"rankings": []}')

        client = LLMClient(api_key="test_key")
        response = client.complete("system", "user", JSON_CONFIG)

        assert isinstance(response, LLMResponse)
        assert response.text == '{"rankings": []}'
        assert response.tokens_input == 150
        assert response.tokens_output == 12
        assert response.model_used == "openai/gpt-oss-20b"
        assert response.latency_ms >= 0

    @patch('services.llm_client.Groq')
    def test_complete_sends_json_mode_and_reasoning_effort(self, mock_groq_class):
        """Test request parameters for a reasoning model in JSON mode."""
        mock_client = _groq_returning("{}")
        mock_groq_class.return_value = mock_client

        LLMClient(api_key="test_key").complete("system", "user", JSON_CONFIG)

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-oss-20b"
        assert kwargs["max_tokens"] == 2000
        assert kwargs["reasoning_effort"] == "low"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "temperature" not in kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]

    @patch('services.llm_client.Groq')
    def test_complete_plain_config(self, mock_groq_class):
        """Test a temperature-only configuration without a system prompt."""
        mock_client = _groq_returning("summary")
        mock_groq_class.return_value = mock_client

        LLMClient(api_key="test_key").complete(None, "summarise this", PLAIN_CONFIG)

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert "reasoning_effort" not in kwargs
        assert "response_format" not in kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "summarise this"}]

    @patch('services.llm_client.Groq')
    def test_complete_with_no_content_returns_empty_text(self, mock_groq_class):
        """Test a reply without content comes back as an empty string."""
        mock_client = _groq_returning(None)
        mock_client.chat.completions.create.return_value.usage = None
        mock_groq_class.return_value = mock_client

        response = LLMClient(api_key="test_key").complete("system", "user", JSON_CONFIG)

        assert response.text == ""
        assert response.tokens_input == 0
        assert response.tokens_output == 0

    @patch('services.llm_client.Groq')
    def test_complete_handles_unexpected_error(self, mock_groq_class):
        """Test that unexpected errors are raised with structured error."""
        mock_groq_class.return_value = _groq_raising(Exception("API Error"))

        client = LLMClient(api_key="test_key")

        with pytest.raises(LLMClientError) as exc_info:
            client.complete("system", "user", JSON_CONFIG)

        error = exc_info.value.error
        assert error.code == "UNKNOWN_ERROR"
        assert "Unexpected error" in error.message
        assert error.details["model"] == "openai/gpt-oss-20b"
        assert error.details["error_type"] == "Exception"

    @patch('services.llm_client.Groq')
    def test_complete_handles_rate_limit_error(self, mock_groq_class):
        """Test that rate limit errors are handled with retry suggestion."""
        mock_groq_class.return_value = _groq_raising(RateLimitError(
            message="Rate limit exceeded",
            response=Mock(status_code=429),
            body=None
        ))

        client = LLMClient(api_key="test_key")

        with pytest.raises(LLMClientError) as exc_info:
            client.complete("system", "user", JSON_CONFIG)

        error = exc_info.value.error
        assert error.code == "RATE_LIMIT_ERROR"
        assert "Rate limit exceeded" in error.message
        assert error.details["retry_after"] == 60
        assert error.details["model"] == "openai/gpt-oss-20b"

    @patch('services.llm_client.Groq')
    def test_complete_handles_authentication_error(self, mock_groq_class):
        """Test that authentication errors are handled properly."""
        mock_groq_class.return_value = _groq_raising(AuthenticationError(
            message="Invalid API key",
            response=Mock(status_code=401),
            body=None
        ))

        client = LLMClient(api_key="test_key")

        with pytest.raises(LLMClientError) as exc_info:
            client.complete("system", "user", PLAIN_CONFIG)

        error = exc_info.value.error
        assert error.code == "AUTHENTICATION_ERROR"
        assert "Authentication failed" in error.message
        assert error.details["model"] == "llama-3.3-70b-versatile"

    @patch('services.llm_client.Groq')
    def test_complete_handles_timeout_error(self, mock_groq_class):
        """Test that timeout errors are handled properly."""
        mock_groq_class.return_value = _groq_raising(APITimeoutError(request=Mock()))

        client = LLMClient(api_key="test_key")

        with pytest.raises(LLMClientError) as exc_info:
            client.complete("system", "user", JSON_CONFIG)

        error = exc_info.value.error
        assert error.code == "TIMEOUT_ERROR"
        assert "timed out" in error.message

    @patch('services.llm_client.Groq')
    def test_complete_handles_generic_api_error(self, mock_groq_class):
        """Test that generic API errors are handled properly."""
        mock_groq_class.return_value = _groq_raising(APIError(
            message="Service unavailable",
            request=Mock(),
            body=None
        ))

        client = LLMClient(api_key="test_key")

        with pytest.raises(LLMClientError) as exc_info:
            client.complete("system", "user", JSON_CONFIG)

        error = exc_info.value.error
        assert error.code == "API_ERROR"
        assert "Groq API error" in error.message

    @patch('services.llm_client.Groq')
    def test_error_includes_latency(self, mock_groq_class):
        """Test that errors include latency measurement."""
        mock_groq_class.return_value = _groq_raising(RateLimitError(
            message="Rate limit exceeded",
            response=Mock(status_code=429),
            body=None
        ))

        client = LLMClient(api_key="test_key")

        with pytest.raises(LLMClientError) as exc_info:
            client.complete("system", "user", JSON_CONFIG)

        error = exc_info.value.error
        assert isinstance(error.details["latency_ms"], int)
        assert error.details["latency_ms"] >= 0
        assert isinstance(exc_info.value.__cause__, RateLimitError)
