"""Maps provider exceptions onto the LLMError taxonomy."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import openai
from pydantic import ValidationError

from agentloop.domain.error_sanitizer import (
    build_exception_details,
    sanitize_error_details,
)
from agentloop.domain.exceptions import (
    ApiKeyError,
    ContextLengthError,
    LLMError,
    LLMTransportError,
    RateLimitError,
    SchemaError,
)


@dataclass(frozen=True)
class LLMErrorMapping:
    """Normalized error mapping for LLM failures."""

    reason: str
    error_type: type[LLMError]
    details: Dict[str, Any]


def map_llm_error(error: Exception) -> LLMErrorMapping:
    """Map a provider exception into a normalized LLM error mapping.

    Args:
        error: Exception raised during the LLM call.

    Returns:
        LLMErrorMapping describing the failure.
    """

    details: Dict[str, Any] = build_exception_details(error)

    if isinstance(error, LLMError):
        return LLMErrorMapping(
            reason=_reason_for(type(error)), error_type=type(error), details=details
        )
    if isinstance(error, ValidationError):
        return LLMErrorMapping(
            reason="schema_error", error_type=SchemaError, details=details
        )
    if isinstance(error, openai.APIStatusError):
        status_code = error.status_code
        details["status_code"] = status_code
        if status_code == 429:
            return LLMErrorMapping(
                reason="rate_limit_error", error_type=RateLimitError, details=details
            )
        if status_code in (401, 403):
            return LLMErrorMapping(
                reason="api_key_error", error_type=ApiKeyError, details=details
            )
        if _is_context_length_payload(error.body):
            return LLMErrorMapping(
                reason="context_length_error",
                error_type=ContextLengthError,
                details=details,
            )
        if status_code >= 500:
            return LLMErrorMapping(
                reason="transport_error", error_type=LLMTransportError, details=details
            )
        return LLMErrorMapping(
            reason="llm_execution_failed", error_type=LLMError, details=details
        )
    if isinstance(error, (openai.APIConnectionError, TimeoutError, ConnectionError)):
        return LLMErrorMapping(
            reason="transport_error", error_type=LLMTransportError, details=details
        )

    details = sanitize_error_details(details)
    error_name = error.__class__.__name__.lower()
    error_message = str(error).lower()
    if (
        "ratelimit" in error_name
        or "rate limit" in error_message
        or "429" in error_message
    ):
        return LLMErrorMapping(
            reason="rate_limit_error", error_type=RateLimitError, details=details
        )
    if (
        "authentication" in error_name
        or "auth" in error_name
        or "api key" in error_message
        or "apikey" in error_message
    ):
        return LLMErrorMapping(
            reason="api_key_error", error_type=ApiKeyError, details=details
        )
    if "context length" in error_message or "context window" in error_message:
        return LLMErrorMapping(
            reason="context_length_error",
            error_type=ContextLengthError,
            details=details,
        )
    return LLMErrorMapping(
        reason="llm_execution_failed", error_type=LLMError, details=details
    )


def is_known_llm_error(error: Exception) -> bool:
    """Return True for errors that should surface as LLM failures."""

    return isinstance(
        error,
        (
            LLMError,
            ValidationError,
            openai.APIError,
            TimeoutError,
            ConnectionError,
        ),
    )


def to_llm_error(error: Exception) -> Exception:
    """Return the domain error to raise for a provider exception.

    Unknown exceptions (programming errors) are returned unchanged.

    Args:
        error: Exception raised during the LLM call.

    Returns:
        An LLMError instance, or ``error`` itself when it is not LLM-related.
    """

    if isinstance(error, LLMError) or not is_known_llm_error(error):
        return error
    mapping = map_llm_error(error)
    message = mapping.details.get("message") or mapping.reason
    return mapping.error_type(f"{mapping.reason}: {message}")


def _reason_for(error_type: type[LLMError]) -> str:
    if issubclass(error_type, SchemaError):
        return "schema_error"
    if issubclass(error_type, RateLimitError):
        return "rate_limit_error"
    if issubclass(error_type, ApiKeyError):
        return "api_key_error"
    if issubclass(error_type, ContextLengthError):
        return "context_length_error"
    if issubclass(error_type, LLMTransportError):
        return "transport_error"
    return "llm_execution_failed"


def _is_context_length_payload(payload: Optional[Any]) -> bool:
    """Return True when an error body indicates a context-length error."""

    if not isinstance(payload, dict):
        return False
    error_info = payload.get("error", payload)
    if not isinstance(error_info, dict):
        return False
    code = error_info.get("code") or error_info.get("type")
    if isinstance(code, str) and code.strip().lower() in {
        "context_length_exceeded",
        "context_window_exceeded",
        "context_length",
        "context_window",
    }:
        return True
    message = error_info.get("message")
    if isinstance(message, str):
        normalized = message.strip().lower()
        if "maximum context length" in normalized:
            return True
        if "context length exceeded" in normalized:
            return True
    return False
