"""Normalized LLM response, stop reasons and token usage."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agentloop.domain.messages import (
    ContentBlock,
    Message,
    Role,
    TextBlock,
    ToolUseBlock,
)


class StopReason(str, Enum):
    """Why the model stopped generating."""

    TOOL_USE = "tool_use"
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    OTHER = "other"


class Usage(BaseModel):
    """Token usage reported for a call."""

    input_tokens: int = 0
    output_tokens: int = 0


class LLMResponse(BaseModel):
    """Normalized response of an LLM call."""

    content: List[ContentBlock] = Field(
        default_factory=list, description="Text and tool-use blocks in order."
    )
    stop_reason: StopReason = Field(default=StopReason.END_TURN)
    usage: Usage = Field(default_factory=Usage)
    raw_output: Optional[Any] = Field(
        default=None, description="Raw provider output if available.", exclude=True
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def text(self) -> str:
        """Return all text blocks joined by newlines."""

        return "\n".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )

    def tool_uses(self) -> List[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    def to_message(self) -> Message:
        """Return the response as an assistant message."""

        return Message(role=Role.ASSISTANT, content=list(self.content))
