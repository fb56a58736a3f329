from __future__ import annotations

from typing import Any, Dict, List
from unittest.mock import MagicMock

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from tenacity import wait_fixed

from agentloop.config import Config
from agentloop.domain.exceptions import ApiKeyError, RateLimitError, SchemaError
from agentloop.domain.messages import Message
from agentloop.llm import chat_model_client
from agentloop.llm.chat_model_client import ChatModelClient
from agentloop.llm.llm_request import LLMRequest
from agentloop.llm.llm_response import StopReason

TOOLS = [
    {
        "type": "function",
        "function": {"name": "ls", "description": "List.", "parameters": {}},
    }
]


class FakeChatModel:
    """Chat model returning scripted outputs or raising scripted errors."""

    def __init__(self, outputs: List[Any]) -> None:
        self._outputs = list(outputs)
        self.bound_tools: List[Dict[str, Any]] = []
        self.inputs: List[Any] = []

    def bind_tools(self, tools):
        self.bound_tools = list(tools)
        return self

    def invoke(self, input, **kwargs):
        self.inputs.append(input)
        output = self._outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output


def _status_error(cls, status_code: int):
    request = httpx.Request("POST", "https://example.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return cls("provider failure", response=response, body=None)


def _request(tools=None) -> LLMRequest:
    return LLMRequest(
        system_prompt="sys",
        messages=[Message.user("hello")],
        tools=tools or [],
        metadata={"session_id": "s1", "iteration": 1},
    )


def test_complete_binds_tools_and_converts_messages() -> None:
    model = FakeChatModel(
        [AIMessage(content="", tool_calls=[{"name": "ls", "args": {}, "id": "c1"}])]
    )
    client = ChatModelClient(model)

    response = client.complete(_request(TOOLS))

    assert model.bound_tools == TOOLS
    sent = model.inputs[0]
    assert isinstance(sent[0], SystemMessage)
    assert isinstance(sent[1], HumanMessage)
    assert response.stop_reason == StopReason.TOOL_USE
    assert response.tool_uses()[0].id == "c1"


def test_complete_without_tools_skips_binding() -> None:
    model = FakeChatModel([AIMessage(content="done")])

    response = ChatModelClient(model).complete(_request())

    assert model.bound_tools == []
    assert response.text() == "done"


def test_complete_retries_transient_errors() -> None:
    request = httpx.Request("POST", "https://example.com")
    model = FakeChatModel(
        [openai.APIConnectionError(request=request), AIMessage(content="ok")]
    )
    client = ChatModelClient(model, max_attempts=3, wait_strategy=wait_fixed(0))

    response = client.complete(_request())

    assert response.text() == "ok"
    assert len(model.inputs) == 2


def test_complete_maps_exhausted_rate_limits() -> None:
    model = FakeChatModel(
        [
            _status_error(openai.RateLimitError, 429),
            _status_error(openai.RateLimitError, 429),
        ]
    )
    client = ChatModelClient(model, max_attempts=2, wait_strategy=wait_fixed(0))

    with pytest.raises(RateLimitError):
        client.complete(_request())


def test_complete_maps_auth_errors_without_retry() -> None:
    model = FakeChatModel([_status_error(openai.AuthenticationError, 401)])
    client = ChatModelClient(model, max_attempts=3, wait_strategy=wait_fixed(0))

    with pytest.raises(ApiKeyError) as exc_info:
        client.complete(_request())

    assert isinstance(exc_info.value.__cause__, openai.AuthenticationError)
    assert len(model.inputs) == 1


def test_complete_rejects_unexpected_output() -> None:
    model = FakeChatModel(["plain string"])

    with pytest.raises(SchemaError):
        ChatModelClient(model).complete(_request())


def test_complete_propagates_programming_errors() -> None:
    model = FakeChatModel([KeyError("bug")])

    with pytest.raises(KeyError):
        ChatModelClient(model).complete(_request())


def test_from_config_uses_litellm_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_chat_openai = MagicMock()
    monkeypatch.setattr(chat_model_client, "ChatOpenAI", fake_chat_openai)
    config = Config(
        model_name="gpt-4o-mini",
        openai_api_key="sk-direct",
        litellm_use_proxy=True,
        litellm_proxy_url="http://proxy.local",
        litellm_proxy_api_key="proxy-key",
    )

    client = ChatModelClient.from_config(config)

    kwargs = fake_chat_openai.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["base_url"] == "http://proxy.local"
    assert kwargs["api_key"] == "proxy-key"
    assert kwargs["max_retries"] == 0
    assert isinstance(client, ChatModelClient)


def test_from_config_direct_openai(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_chat_openai = MagicMock()
    monkeypatch.setattr(chat_model_client, "ChatOpenAI", fake_chat_openai)
    config = Config(openai_api_key="sk-direct")

    ChatModelClient.from_config(config)

    kwargs = fake_chat_openai.call_args.kwargs
    assert "base_url" not in kwargs
    assert kwargs["api_key"] == "sk-direct"
    assert kwargs["timeout"] == config.llm_timeout_seconds
