"""Tests for conversation domain primitives."""

import pytest
from pydantic import TypeAdapter, ValidationError

from agentloop.domain import (
    CancellationToken,
    ContentBlock,
    Conversation,
    ExecutionContext,
    FunctionTool,
    Message,
    Role,
    StatusNoteBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from agentloop.domain.exceptions import ConversationError


def _tool_round(call_id: str):
    return [
        Message(
            role=Role.ASSISTANT,
            content=[ToolUseBlock(id=call_id, name="ls", input={})],
        ),
        Message(
            role=Role.USER,
            content=[ToolResultBlock(tool_use_id=call_id, content="files")],
        ),
    ]


def test_content_blocks_are_discriminated_by_type() -> None:
    adapter = TypeAdapter(ContentBlock)

    block = adapter.validate_python({"type": "tool_use", "id": "c1", "name": "ls"})

    assert isinstance(block, ToolUseBlock)
    assert block.input == {}


def test_messages_are_immutable() -> None:
    message = Message.user("hello")

    with pytest.raises(ValidationError):
        message.role = Role.ASSISTANT


def test_message_helpers() -> None:
    message = Message(
        role=Role.ASSISTANT,
        content=[
            TextBlock(text="first"),
            ToolUseBlock(id="c1", name="ls", input={"p": "."}),
            TextBlock(text="second"),
        ],
    )

    assert message.text() == "first\nsecond"
    assert [block.id for block in message.tool_uses()] == ["c1"]
    assert message.is_plain_user_turn() is False
    assert Message.user("hi").is_plain_user_turn() is True
    assert _tool_round("c1")[1].is_plain_user_turn() is False


def test_conversation_must_start_with_user() -> None:
    conversation = Conversation()

    with pytest.raises(ConversationError):
        conversation.append(Message.assistant("hello"))


def test_conversation_bound_drops_oldest_turns() -> None:
    conversation = Conversation([Message.user("one")], max_entries=4)
    conversation.append(Message.assistant("two"))
    conversation.append(Message.user("three"))
    conversation.append(Message.assistant("four"))
    conversation.append(Message.user("five"))

    assert len(conversation) == 3
    assert conversation[0].text() == "three"
    assert conversation.last().text() == "five"


def test_conversation_bound_drops_oldest_tool_round() -> None:
    messages = [Message.user("start")] + _tool_round("c1") + _tool_round("c2")
    conversation = Conversation(messages, max_entries=4)

    conversation.append(Message.user("next"))

    assert conversation[0].text() == "start"
    assert [m.role for m in conversation] == [
        Role.USER,
        Role.ASSISTANT,
        Role.USER,
        Role.USER,
    ]
    assert [b.id for b in conversation[1].tool_uses()] == ["c2"]
    assert [b.tool_use_id for b in conversation[2].tool_results()] == ["c2"]


def test_conversation_bound_keeps_opening_turn_mid_round() -> None:
    conversation = Conversation([Message.user("start")], max_entries=3)
    first_call, first_results = _tool_round("c1")
    second_call, _ = _tool_round("c2")

    conversation.append(first_call)
    conversation.append(first_results)
    conversation.append(second_call)

    assert [m.role for m in conversation] == [Role.USER, Role.ASSISTANT]
    assert conversation[0].text() == "start"
    assert [b.id for b in conversation[1].tool_uses()] == ["c2"]


def test_conversation_bound_rejects_too_small_limit() -> None:
    with pytest.raises(ValueError):
        Conversation(max_entries=2)


def test_conversation_replace_keeps_role_and_position() -> None:
    conversation = Conversation([Message.user("start")] + _tool_round("c1"))
    replacement = Message(
        role=Role.USER,
        content=[ToolResultBlock(tool_use_id="c1", content="trimmed")],
    )

    conversation.replace(2, replacement)

    assert conversation[2] == replacement
    with pytest.raises(ConversationError):
        conversation.replace(2, Message.assistant("wrong role"))


def test_conversation_messages_returns_copy() -> None:
    conversation = Conversation([Message.user("start")])

    conversation.messages.append(Message.assistant("ignored"))

    assert len(conversation) == 1


def test_execution_context_abort_is_one_way() -> None:
    context = ExecutionContext(session_id="s1", user_id="u1")
    assert context.abort_requested is False

    context.abort_requested = True

    assert context.abort_requested is True
    with pytest.raises(ValueError):
        context.abort_requested = False


def test_cancellation_token_is_shared() -> None:
    token = CancellationToken()
    first = ExecutionContext(session_id="s1", user_id="u1", cancellation=token)
    second = ExecutionContext(session_id="s1", user_id="u1", cancellation=token)

    first.request_abort()

    assert second.abort_requested is True


def test_execution_context_log_extra() -> None:
    context = ExecutionContext(session_id="s1", user_id="u1")

    assert context.log_extra(iteration=2) == {
        "session_id": "s1",
        "user_id": "u1",
        "iteration": 2,
    }
    assert context.logger is not None


def test_function_tool_renders_structured_results() -> None:
    tool = FunctionTool(
        name="stats",
        description="Return stats.",
        input_schema={"type": "object", "properties": {}},
        handler=lambda args, context: {"count": args["n"]},
    )
    context = ExecutionContext(session_id="s1", user_id="u1")

    assert tool.execute({"n": 2}, context) == '{\n  "count": 2\n}'
    assert tool.as_openai_tool()["function"]["name"] == "stats"


def test_status_note_is_a_distinct_block() -> None:
    note = StatusNoteBlock(text="[status] iteration=1/20")

    assert note.type == "status_note"
