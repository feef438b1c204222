"""Unit tests for EmbeddingModel class."""
import sys
import json
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch, MagicMock
import httpx
from services.embedding_model import EmbeddingModel


def _client_returning(*responses):
    """Build a patched httpx.Client whose post() yields the given responses."""
    mock_client = MagicMock()
    mock_client.__enter__.return_value.post.side_effect = list(responses)
    return mock_client


def _response(status_code, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


def _html_response(status_code):
    response = Mock()
    response.status_code = status_code
    response.text = "<html>Bad Gateway</html>"
    response.json.side_effect = json.JSONDecodeError("Expecting value", response.text, 0)
    return response


class TestEmbeddingModel:
    """Test suite for EmbeddingModel."""

    def test_initialization_success(self):
        """Test successful initialization with API key."""
        model = EmbeddingModel(api_key="test_key")
        assert model.api_key == "test_key"
        assert model.model_name == "sentence-transformers/all-mpnet-base-v2"
        assert model.max_retries == 5
        assert model.api_url.endswith(
            "/models/sentence-transformers/all-mpnet-base-v2/pipeline/feature-extraction"
        )

    def test_initialization_without_api_key(self):
        """Test initialization fails without API key."""
        with pytest.raises(ValueError, match="HUGGINGFACE_API_KEY"):
            EmbeddingModel(api_key=None)

    def test_embed_text_empty_string(self):
        """Test embed_text raises error for empty string."""
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            model.embed_text("")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            model.embed_text("   ")

    def test_embed_batch_empty_list(self):
        """Test embed_batch raises error for empty list."""
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match="Texts list cannot be empty"):
            model.embed_batch([])

    def test_embed_batch_rejects_empty_entries(self):
        """Empty entries would break index alignment, so they are rejected."""
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match=r"positions \[1\]"):
            model.embed_batch(["page one", "   ", "page three"])

    @patch('httpx.Client')
    def test_embed_text_success(self, mock_client_class):
        """Test successful single text embedding."""
        mock_client = _client_returning(_response(200, [[0.1, 0.2, 0.3]]))
        mock_client_class.return_value = mock_client

        model = EmbeddingModel(api_key="test_key")
        result = model.embed_text("test text")

        assert result == [0.1, 0.2, 0.3]
        post = mock_client.__enter__.return_value.post
        assert post.call_args.kwargs["json"]["inputs"] == ["test text"]
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer test_key"

    @patch('httpx.Client')
    def test_embed_batch_success(self, mock_client_class):
        """Test successful batch embedding keeps input order."""
        mock_client_class.return_value = _client_returning(
            _response(200, [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]])
        )

        model = EmbeddingModel(api_key="test_key")
        result = model.embed_batch(["text1", "text2"])

        assert result == [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]

    @patch('httpx.Client')
    @patch('time.sleep')
    def test_retry_on_503_success(self, mock_sleep, mock_client_class):
        """Test retry logic succeeds after 503 error."""
        mock_client = _client_returning(
            _response(503, {"estimated_time": 10}, '{"estimated_time": 10}'),
            _response(200, [[0.1, 0.2, 0.3]]),
        )
        mock_client_class.return_value = mock_client

        model = EmbeddingModel(api_key="test_key", initial_delay=1.0)
        result = model.embed_text("test text")

        assert result == [0.1, 0.2, 0.3]
        mock_sleep.assert_called_once_with(1.0)
        assert mock_client.__enter__.return_value.post.call_count == 2

    @patch('httpx.Client')
    @patch('time.sleep')
    def test_retry_exhausted_on_503(self, mock_sleep, mock_client_class):
        """Test retry logic fails after max retries on 503."""
        busy = _response(503, {"estimated_time": 10}, '{"estimated_time": 10}')
        mock_client = _client_returning(busy, busy, busy)
        mock_client_class.return_value = mock_client

        model = EmbeddingModel(api_key="test_key", max_retries=3, initial_delay=0.1)

        with pytest.raises(RuntimeError, match="Failed to generate embeddings"):
            model.embed_text("test text")

        assert mock_client.__enter__.return_value.post.call_count == 3

    @patch('httpx.Client')
    def test_rate_limit_error(self, mock_client_class):
        """Test handling of 429 rate limit error."""
        mock_client_class.return_value = _client_returning(_response(429))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(RuntimeError, match="Rate limit exceeded"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_authentication_error(self, mock_client_class):
        """Test handling of 401 authentication error."""
        mock_client_class.return_value = _client_returning(_response(401))

        model = EmbeddingModel(api_key="invalid_key")

        with pytest.raises(RuntimeError, match="Invalid API key"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_unexpected_status_error(self, mock_client_class):
        """Other non-200 statuses fail immediately with the response body."""
        mock_client_class.return_value = _client_returning(_response(400, text="bad input"))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(RuntimeError, match="status 400: bad input"):
            model.embed_text("test text")

    @patch('httpx.Client')
    @patch('time.sleep')
    def test_timeout_with_retry(self, mock_sleep, mock_client_class):
        """Test handling of timeout with retry."""
        mock_client_class.return_value = _client_returning(
            httpx.TimeoutException("Timeout"),
            _response(200, [[0.1, 0.2, 0.3]]),
        )

        model = EmbeddingModel(api_key="test_key", initial_delay=0.1)
        result = model.embed_text("test text")

        assert result == [0.1, 0.2, 0.3]
        assert mock_sleep.called

    @patch('httpx.Client')
    @patch('time.sleep')
    def test_network_error_with_retry(self, mock_sleep, mock_client_class):
        """Test handling of network error with retry."""
        mock_client_class.return_value = _client_returning(
            httpx.RequestError("Network error"),
            _response(200, [[0.1, 0.2, 0.3]]),
        )

        model = EmbeddingModel(api_key="test_key", initial_delay=0.1)
        result = model.embed_text("test text")

        assert result == [0.1, 0.2, 0.3]
        assert mock_sleep.called

    @patch('httpx.Client')
    def test_warmup_success(self, mock_client_class):
        """Test successful model warmup."""
        mock_client_class.return_value = _client_returning(_response(200, [[0.1, 0.2, 0.3]]))

        model = EmbeddingModel(api_key="test_key")

        assert model.warmup() is True

    @patch('httpx.Client')
    def test_warmup_failure(self, mock_client_class):
        """Test model warmup reports failure instead of raising."""
        mock_client_class.return_value = _client_returning(_response(500, text="boom"))

        model = EmbeddingModel(api_key="test_key")

        assert model.warmup() is False

    @patch('httpx.Client')
    def test_exponential_backoff_delays(self, mock_client_class):
        """Test that exponential backoff increases delays correctly."""
        busy = _response(503, {"estimated_time": 5}, '{"estimated_time": 5}')
        mock_client_class.return_value = _client_returning(busy, busy, busy)

        model = EmbeddingModel(api_key="test_key", max_retries=3, initial_delay=2.0)

        with patch('time.sleep') as mock_sleep:
            with pytest.raises(RuntimeError):
                model.embed_text("test text")

            # 3 attempts = 2 sleeps: 2s, then 4s
            delays = [c.args[0] for c in mock_sleep.call_args_list]
            assert delays == [2.0, 4.0]

    @patch('httpx.Client')
    def test_non_json_success_body(self, mock_client_class):
        """A 200 reply that is not JSON fails as a RuntimeError."""
        mock_client_class.return_value = _client_returning(_html_response(200))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(RuntimeError, match="not valid JSON"):
            model.embed_text("test text")

    @patch('httpx.Client')
    @patch('time.sleep')
    def test_non_json_503_is_retried(self, mock_sleep, mock_client_class):
        """A non-JSON 503 page during model load still gets the backoff."""
        mock_client = _client_returning(
            _html_response(503),
            _response(200, [[0.1, 0.2, 0.3]]),
        )
        mock_client_class.return_value = mock_client

        model = EmbeddingModel(api_key="test_key", initial_delay=1.0)
        result = model.embed_text("test text")

        assert result == [0.1, 0.2, 0.3]
        mock_sleep.assert_called_once_with(1.0)
        assert mock_client.__enter__.return_value.post.call_count == 2
