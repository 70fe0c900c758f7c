"""
Unit tests for the Gemini adapter.

The HTTP layer is mocked; no request leaves the process.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from refiner_gateway.sdk.base import ProviderError, ProviderErrorKind
from refiner_gateway.sdk.gemini_client import GeminiClient, extract_text


def _response(status_code=200, payload=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    response.text = ""
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def _candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGeminiClient:
    """Test request shape, text extraction and error mapping."""

    def setup_method(self):
        """Set up client."""
        self.client = GeminiClient(model="gemini-2.0-flash-lite", timeout_seconds=5.0)

    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_successful_generation(self, mock_post):
        """Test that the first candidate's text is returned trimmed."""
        mock_post.return_value = _response(payload=_candidate("  Hello there.  \n"))

        result = self.client.generate("prompt body", "user-key")

        assert result == "Hello there."

        args, kwargs = mock_post.call_args
        assert args[0] == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-2.0-flash-lite:generateContent"
        )
        assert kwargs["json"] == {"contents": [{"parts": [{"text": "prompt body"}]}]}
        assert kwargs["headers"]["x-goog-api-key"] == "user-key"
        assert kwargs["timeout"] == 5.0

    def test_models_prefix_is_not_doubled(self):
        """Test that a 'models/' prefixed name builds the same endpoint."""
        client = GeminiClient(model="models/gemini-2.0-flash-lite")

        assert client.endpoint.endswith("/models/gemini-2.0-flash-lite:generateContent")

    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_timeout_is_unavailable(self, mock_post):
        """Test that a timeout maps to UNAVAILABLE."""
        mock_post.side_effect = requests.Timeout("too slow")

        with pytest.raises(ProviderError) as exc_info:
            self.client.generate("prompt", "key")

        assert exc_info.value.kind == ProviderErrorKind.UNAVAILABLE

    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_connection_error_is_unavailable(self, mock_post):
        """Test that a connection failure maps to UNAVAILABLE."""
        mock_post.side_effect = requests.ConnectionError("dns failure")

        with pytest.raises(ProviderError) as exc_info:
            self.client.generate("prompt", "key")

        assert exc_info.value.kind == ProviderErrorKind.UNAVAILABLE

    @pytest.mark.parametrize("status_code, expected_kind", [
        (400, ProviderErrorKind.INVALID_CREDENTIAL),
        (401, ProviderErrorKind.INVALID_CREDENTIAL),
        (403, ProviderErrorKind.INVALID_CREDENTIAL),
        (429, ProviderErrorKind.QUOTA_EXCEEDED),
        (500, ProviderErrorKind.UPSTREAM_ERROR),
        (503, ProviderErrorKind.UPSTREAM_ERROR),
    ])
    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_status_codes_are_mapped(self, mock_post, status_code, expected_kind):
        """Test that non-2xx statuses map onto error kinds."""
        mock_post.return_value = _response(
            status_code=status_code,
            payload={"error": {"message": "API key not valid"}},
        )

        with pytest.raises(ProviderError) as exc_info:
            self.client.generate("prompt", "key")

        assert exc_info.value.kind == expected_kind
        assert exc_info.value.status_code == status_code

    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_missing_candidates_is_empty_result(self, mock_post):
        """Test that a 200 without candidates maps to EMPTY_RESULT."""
        mock_post.return_value = _response(payload={"candidates": []})

        with pytest.raises(ProviderError) as exc_info:
            self.client.generate("prompt", "key")

        assert exc_info.value.kind == ProviderErrorKind.EMPTY_RESULT

    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_blank_text_is_empty_result(self, mock_post):
        """Test that whitespace-only text maps to EMPTY_RESULT."""
        mock_post.return_value = _response(payload=_candidate("   "))

        with pytest.raises(ProviderError) as exc_info:
            self.client.generate("prompt", "key")

        assert exc_info.value.kind == ProviderErrorKind.EMPTY_RESULT

    @patch("refiner_gateway.sdk.gemini_client.requests.post")
    def test_invalid_json_is_empty_result(self, mock_post):
        """Test that an unparseable 200 body maps to EMPTY_RESULT."""
        mock_post.return_value = _response(json_error=ValueError("not json"))

        with pytest.raises(ProviderError) as exc_info:
            self.client.generate("prompt", "key")

        assert exc_info.value.kind == ProviderErrorKind.EMPTY_RESULT


class TestExtractText:
    """Test response payload navigation."""

    def test_extracts_first_part(self):
        assert extract_text(_candidate("hi")) == "hi"

    def test_missing_path_returns_none(self):
        """Test that any missing step yields None."""
        assert extract_text({}) is None
        assert extract_text({"candidates": [{"content": {}}]}) is None
        assert extract_text(None) is None
