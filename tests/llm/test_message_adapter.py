"""Tests for conversation <-> LangChain message conversion."""

import pytest
from langchain_core.messages import (
    AIMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from agentloop.domain.exceptions import SchemaError
from agentloop.domain.messages import (
    Message,
    Role,
    StatusNoteBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from agentloop.llm.llm_response import StopReason
from agentloop.llm.message_adapter import (
    NOT_EXECUTED_RESULT,
    from_ai_message,
    to_langchain_messages,
)


def test_to_langchain_messages_orders_tool_results() -> None:
    """Tool results follow their AIMessage; notes come after as user text."""
    messages = [
        Message.user("list files"),
        Message(
            role=Role.ASSISTANT,
            content=[
                TextBlock(text="Checking."),
                ToolUseBlock(id="c1", name="ls", input={"path": "."}),
                ToolUseBlock(id="c2", name="ls", input={"path": "src"}),
            ],
        ),
        Message(
            role=Role.USER,
            content=[
                ToolResultBlock(tool_use_id="c1", content="a.py"),
                StatusNoteBlock(text="[aborted]"),
            ],
        ),
    ]

    rendered = to_langchain_messages("sys", messages)

    assert [type(message) for message in rendered] == [
        SystemMessage,
        HumanMessage,
        AIMessage,
        ToolMessage,
        ToolMessage,
        HumanMessage,
    ]
    ai_message = rendered[2]
    assert ai_message.content == "Checking."
    assert [call["id"] for call in ai_message.tool_calls] == ["c1", "c2"]
    assert ai_message.tool_calls[0]["args"] == {"path": "."}
    assert rendered[3].tool_call_id == "c1"
    assert rendered[3].content == "a.py"
    assert rendered[4].tool_call_id == "c2"
    assert rendered[4].content == NOT_EXECUTED_RESULT
    assert rendered[5].content == "[aborted]"


def test_to_langchain_messages_without_system_prompt() -> None:
    rendered = to_langchain_messages("", [Message.user("hi")])

    assert len(rendered) == 1
    assert isinstance(rendered[0], HumanMessage)


def test_from_ai_message_extracts_tool_calls_and_usage() -> None:
    message = AIMessage(
        content="Let me look.",
        tool_calls=[{"name": "ls", "args": {"path": "."}, "id": "c1"}],
        usage_metadata={"input_tokens": 12, "output_tokens": 4, "total_tokens": 16},
    )

    response = from_ai_message(message)

    assert response.text() == "Let me look."
    assert response.stop_reason == StopReason.TOOL_USE
    assert response.tool_uses()[0].name == "ls"
    assert response.tool_uses()[0].input == {"path": "."}
    assert response.usage.input_tokens == 12
    assert response.usage.output_tokens == 4


def test_from_ai_message_reads_content_parts_and_finish_reason() -> None:
    message = AIMessage(
        content=[{"type": "text", "text": "part one"}, {"type": "text", "text": "two"}],
        response_metadata={
            "finish_reason": "length",
            "token_usage": {"prompt_tokens": 5, "completion_tokens": 2},
        },
    )

    response = from_ai_message(message)

    assert response.text() == "part one\ntwo"
    assert response.stop_reason == StopReason.MAX_TOKENS
    assert response.usage.input_tokens == 5
    assert response.usage.output_tokens == 2
    assert response.tool_uses() == []


def test_from_ai_message_rejects_unparseable_tool_calls() -> None:
    message = AIMessage(
        content="",
        invalid_tool_calls=[
            {"name": "ls", "args": "{broken", "id": "c1", "error": "bad json"}
        ],
    )

    with pytest.raises(SchemaError):
        from_ai_message(message)


def test_response_round_trips_into_assistant_message() -> None:
    message = AIMessage(
        content="",
        tool_calls=[{"name": "ls", "args": {}, "id": "c9"}],
    )

    assistant = from_ai_message(message).to_message()

    assert assistant.role == Role.ASSISTANT
    assert assistant.tool_uses()[0].id == "c9"
