"""Tests for LLM error mapping helpers."""

from __future__ import annotations

import httpx
import openai
import pytest
from pydantic import BaseModel, ValidationError

from agentloop.domain.exceptions import (
    ApiKeyError,
    ContextLengthError,
    LLMError,
    LLMTransportError,
    RateLimitError,
    SchemaError,
)
from agentloop.llm.llm_error_mapper import (
    _is_context_length_payload,
    is_known_llm_error,
    map_llm_error,
    to_llm_error,
)


class _SchemaModel(BaseModel):
    value: int


def _status_error(status_code: int, body=None) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://example.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return openai.APIStatusError("provider failure", response=response, body=body)


def test_map_llm_error_validation_error() -> None:
    """Validation errors map to schema_error."""
    with pytest.raises(ValidationError) as exc_info:
        _SchemaModel.model_validate({"value": "nope"})

    mapping = map_llm_error(exc_info.value)

    assert mapping.reason == "schema_error"
    assert mapping.error_type == SchemaError


@pytest.mark.parametrize(
    "status_code, reason, error_type",
    [
        (401, "api_key_error", ApiKeyError),
        (403, "api_key_error", ApiKeyError),
        (429, "rate_limit_error", RateLimitError),
        (503, "transport_error", LLMTransportError),
        (400, "llm_execution_failed", LLMError),
    ],
)
def test_map_llm_error_http_status(status_code, reason, error_type) -> None:
    """HTTP status codes map to stable reasons."""
    mapping = map_llm_error(_status_error(status_code))

    assert mapping.reason == reason
    assert mapping.error_type == error_type
    assert mapping.details["status_code"] == status_code


def test_map_llm_error_http_status_context_payload() -> None:
    """Context-length payloads map to capacity errors."""
    error = _status_error(400, body={"error": {"code": "context_length_exceeded"}})

    mapping = map_llm_error(error)

    assert mapping.reason == "context_length_error"
    assert mapping.error_type == ContextLengthError


def test_map_llm_error_connection_error() -> None:
    request = httpx.Request("POST", "https://example.com")

    mapping = map_llm_error(openai.APIConnectionError(request=request))

    assert mapping.error_type == LLMTransportError


def test_map_llm_error_specific_exceptions() -> None:
    """Explicit error types map to stable reasons."""
    mapping = map_llm_error(ApiKeyError("bad key"))
    assert mapping.reason == "api_key_error"

    mapping = map_llm_error(RateLimitError("slow down"))
    assert mapping.reason == "rate_limit_error"

    mapping = map_llm_error(ContextLengthError("too long"))
    assert mapping.reason == "context_length_error"


def test_map_llm_error_text_fallbacks() -> None:
    """Text-only errors still map to stable categories."""
    mapping = map_llm_error(Exception("rate limit hit"))
    assert mapping.reason == "rate_limit_error"

    mapping = map_llm_error(Exception("API key invalid"))
    assert mapping.reason == "api_key_error"

    mapping = map_llm_error(Exception("something else"))
    assert mapping.reason == "llm_execution_failed"


def test_is_known_llm_error() -> None:
    request = httpx.Request("POST", "https://example.com")

    assert is_known_llm_error(openai.APIConnectionError(request=request)) is True
    assert is_known_llm_error(TimeoutError()) is True
    assert is_known_llm_error(KeyError("bug")) is False


def test_to_llm_error_converts_provider_errors() -> None:
    error = to_llm_error(_status_error(429))

    assert isinstance(error, RateLimitError)
    assert str(error).startswith("rate_limit_error: ")


def test_to_llm_error_leaves_programming_errors() -> None:
    bug = KeyError("bug")

    assert to_llm_error(bug) is bug


def test_is_context_length_payload_message() -> None:
    """Message-based context detection returns True."""
    payload = {"error": {"message": "Maximum context length exceeded"}}

    assert _is_context_length_payload(payload) is True
    assert _is_context_length_payload("not a dict") is False
