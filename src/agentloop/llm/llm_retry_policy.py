"""Retryable LLM exceptions and the backoff used for them."""

import openai
from tenacity import wait_exponential_jitter

DEFAULT_MAX_ATTEMPTS = 3


def default_retry_exceptions() -> tuple[type[Exception], ...]:
    """Return the provider exceptions worth retrying at the transport level."""

    return (
        openai.RateLimitError,
        openai.APIConnectionError,
        openai.InternalServerError,
    )


def default_wait_strategy():
    """Return the default tenacity wait strategy."""

    return wait_exponential_jitter(initial=1.0, max=8.0)
