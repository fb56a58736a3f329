"""Conversion between conversation messages and LangChain chat messages."""

from typing import Any, Dict, List, Sequence

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from agentloop.domain.exceptions import SchemaError
from agentloop.domain.messages import (
    ContentBlock,
    Message,
    Role,
    StatusNoteBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from agentloop.llm.llm_response import LLMResponse, StopReason, Usage

NOT_EXECUTED_RESULT = "Not executed: the request was stopped before this tool ran."

_STOP_REASONS = {
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "tool_use": StopReason.TOOL_USE,
    "stop": StopReason.END_TURN,
    "end_turn": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
    "max_tokens": StopReason.MAX_TOKENS,
}


def to_langchain_messages(
    system_prompt: str, messages: Sequence[Message]
) -> List[BaseMessage]:
    """Render a conversation as LangChain messages.

    Tool results become ToolMessages placed directly after the AIMessage that
    requested them; status notes and text become a HumanMessage after those.
    Tool calls left without a result (an aborted round) receive a
    placeholder result so the history stays valid for the provider.

    Args:
        system_prompt: System prompt for the call.
        messages: Conversation messages, oldest first.

    Returns:
        LangChain messages ready for ``invoke``.
    """

    rendered: List[BaseMessage] = []
    if system_prompt:
        rendered.append(SystemMessage(content=system_prompt))
    pending: List[str] = []

    for message in messages:
        if message.role == Role.ASSISTANT:
            rendered.extend(_placeholder_results(pending))
            pending = []
            tool_uses = message.tool_uses()
            rendered.append(
                AIMessage(
                    content=message.text(),
                    tool_calls=[
                        {
                            "name": block.name,
                            "args": dict(block.input),
                            "id": block.id,
                            "type": "tool_call",
                        }
                        for block in tool_uses
                    ],
                )
            )
            pending = [block.id for block in tool_uses]
            continue

        notes: List[str] = []
        for block in message.content:
            if isinstance(block, ToolResultBlock):
                rendered.append(
                    ToolMessage(content=block.content, tool_call_id=block.tool_use_id)
                )
                if block.tool_use_id in pending:
                    pending.remove(block.tool_use_id)
            elif isinstance(block, (TextBlock, StatusNoteBlock)):
                notes.append(block.text)
        rendered.extend(_placeholder_results(pending))
        pending = []
        if notes:
            rendered.append(HumanMessage(content="\n\n".join(notes)))

    rendered.extend(_placeholder_results(pending))
    return rendered


def from_ai_message(message: AIMessage) -> LLMResponse:
    """Normalize a LangChain AIMessage into an LLMResponse.

    Args:
        message: Model output.

    Returns:
        The normalized response.

    Raises:
        SchemaError: If the model emitted tool calls that could not be parsed.
    """

    if message.invalid_tool_calls:
        names = ", ".join(
            str(call.get("name") or "<unnamed>") for call in message.invalid_tool_calls
        )
        raise SchemaError(f"Model emitted unparseable tool calls: {names}")

    content: List[ContentBlock] = []
    text = _extract_text(message.content)
    if text:
        content.append(TextBlock(text=text))
    for index, call in enumerate(message.tool_calls):
        content.append(
            ToolUseBlock(
                id=call.get("id") or f"call_{index}",
                name=call["name"],
                input=dict(call.get("args") or {}),
            )
        )

    return LLMResponse(
        content=content,
        stop_reason=_stop_reason(message),
        usage=_usage(message),
        raw_output=message,
    )


def _placeholder_results(pending: List[str]) -> List[ToolMessage]:
    return [
        ToolMessage(content=NOT_EXECUTED_RESULT, tool_call_id=call_id)
        for call_id in pending
    ]


def _extract_text(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    parts: List[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(str(part.get("text", "")))
    return "\n".join(parts).strip()


def _stop_reason(message: AIMessage) -> StopReason:
    if message.tool_calls:
        return StopReason.TOOL_USE
    metadata: Dict[str, Any] = message.response_metadata or {}
    raw = metadata.get("finish_reason") or metadata.get("stop_reason")
    if raw is None:
        return StopReason.END_TURN
    return _STOP_REASONS.get(str(raw), StopReason.OTHER)


def _usage(message: AIMessage) -> Usage:
    usage_metadata = message.usage_metadata
    if usage_metadata:
        return Usage(
            input_tokens=int(usage_metadata.get("input_tokens") or 0),
            output_tokens=int(usage_metadata.get("output_tokens") or 0),
        )
    token_usage = (message.response_metadata or {}).get("token_usage") or {}
    return Usage(
        input_tokens=int(token_usage.get("prompt_tokens") or 0),
        output_tokens=int(token_usage.get("completion_tokens") or 0),
    )
