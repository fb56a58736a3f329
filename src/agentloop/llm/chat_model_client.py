"""LLM client backed by a LangChain chat model."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage
from langchain_openai import ChatOpenAI

from agentloop.config import Config
from agentloop.domain.exceptions import LLMError, SchemaError
from agentloop.llm.llm_error_mapper import to_llm_error
from agentloop.llm.llm_request import LLMRequest
from agentloop.llm.llm_response import LLMResponse
from agentloop.llm.llm_retry_policy import (
    default_retry_exceptions,
    default_wait_strategy,
)
from agentloop.llm.message_adapter import from_ai_message, to_langchain_messages
from agentloop.llm.stable_transport import StableTransport, StableTransportError

logger = logging.getLogger(__name__)


class ChatModelClient:
    """LLM client backed by a LangChain chat model.

    Retries of transient provider failures happen here, never in the loop.
    Every other failure is raised as an LLMError.
    """

    def __init__(
        self,
        chat_model: BaseChatModel,
        max_attempts: int = 1,
        retry_exceptions: Optional[Tuple[type[Exception], ...]] = None,
        wait_strategy: Optional[Any] = None,
        model_name: Optional[str] = None,
    ) -> None:
        """Initialize the client.

        Args:
            chat_model: Chat model supporting ``bind_tools`` and ``invoke``.
            max_attempts: Transport attempts for retryable failures.
            retry_exceptions: Exception types eligible for retry.
            wait_strategy: Tenacity wait strategy between attempts.
            model_name: Model name used in log records.
        """

        self._chat_model = chat_model
        self._max_attempts = max(1, int(max_attempts))
        self._retry_exceptions = (
            retry_exceptions
            if retry_exceptions is not None
            else default_retry_exceptions()
        )
        self._wait_strategy = wait_strategy or default_wait_strategy()
        self._model_name = model_name or getattr(chat_model, "model_name", None)

    @classmethod
    def from_config(cls, config: Config) -> "ChatModelClient":
        """Build a client for the configured OpenAI-compatible endpoint.

        Args:
            config: Application configuration.

        Returns:
            A client using ChatOpenAI directly or through the LiteLLM proxy.
        """

        kwargs: Dict[str, Any] = {
            "model": config.get_model_name(),
            "timeout": config.llm_timeout_seconds,
            "max_tokens": config.max_output_tokens,
            # Retries are handled by StableTransport.
            "max_retries": 0,
        }
        api_key = config.get_openai_api_key()
        if config.use_litellm_proxy():
            kwargs["base_url"] = config.get_litellm_proxy_url()
            api_key = config.get_litellm_proxy_api_key() or api_key
        if api_key is not None:
            kwargs["api_key"] = api_key
        return cls(
            ChatOpenAI(**kwargs),
            max_attempts=config.llm_max_attempts,
            model_name=config.get_model_name(),
        )

    def complete(self, request: LLMRequest) -> LLMResponse:
        """Execute one LLM call.

        Args:
            request: Conversation, system prompt, and tool catalog.

        Returns:
            The normalized response.

        Raises:
            LLMError: On provider, transport, or response-shape failures.
        """

        model = self._chat_model
        if request.tools_enabled:
            model = model.bind_tools(request.tools)
        messages = to_langchain_messages(request.system_prompt, request.messages)
        transport = StableTransport(
            model.invoke,
            retry_exceptions=self._retry_exceptions,
            max_attempts=self._max_attempts,
            wait_strategy=self._wait_strategy,
        )
        extra = {
            "session_id": request.metadata.get("session_id"),
            "iteration": request.metadata.get("iteration"),
            "model": self._model_name,
            "tools_enabled": request.tools_enabled,
        }
        logger.debug("LLM request start", extra=extra)
        try:
            output = transport.complete({"input": messages})
        except StableTransportError as exc:
            if isinstance(exc.last_error, Exception):
                raise to_llm_error(exc.last_error) from exc.last_error
            raise
        except LLMError:
            raise
        except Exception as exc:
            error = to_llm_error(exc)
            if error is exc:
                raise
            raise error from exc
        logger.debug("LLM request complete", extra=extra)

        if not isinstance(output, AIMessage):
            raise SchemaError(
                f"Unexpected chat model output type: {type(output).__name__}"
            )
        return from_ai_message(output)
