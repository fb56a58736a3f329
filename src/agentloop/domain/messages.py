"""Conversation messages and their content blocks."""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class TextBlock(BaseModel):
    """Plain text authored by the user or the model."""

    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(frozen=True)


class ToolUseBlock(BaseModel):
    """A tool call requested by the model."""

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(description="Provider-assigned tool call id.")
    name: str = Field(description="Name of the requested tool.")
    input: Dict[str, Any] = Field(
        default_factory=dict, description="Arguments for the tool call."
    )

    model_config = ConfigDict(frozen=True)


class ToolResultBlock(BaseModel):
    """Outcome of a tool call, fed back to the model."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str = Field(description="Id of the ToolUseBlock being answered.")
    content: str = Field(description="Result text (or error description).")
    truncated: bool = Field(
        default=False, description="Whether content was cut to a size ceiling."
    )

    model_config = ConfigDict(frozen=True)


class StatusNoteBlock(BaseModel):
    """Synthetic, loop-authored status line injected into the conversation."""

    type: Literal["status_note"] = "status_note"
    text: str

    model_config = ConfigDict(frozen=True)


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock, StatusNoteBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """A single conversation entry.

    Messages are immutable; compaction replaces a message with a new one.
    """

    role: Role
    content: List[ContentBlock] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def user(cls, text: str) -> "Message":
        """Build a plain user turn."""

        return cls(role=Role.USER, content=[TextBlock(text=text)])

    @classmethod
    def assistant(cls, text: str) -> "Message":
        """Build a plain assistant turn."""

        return cls(role=Role.ASSISTANT, content=[TextBlock(text=text)])

    def text(self) -> str:
        """Return the model-authored text blocks joined by newlines."""

        return "\n".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )

    def tool_uses(self) -> List[ToolUseBlock]:
        """Return the tool-use blocks in request order."""

        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    def tool_results(self) -> List[ToolResultBlock]:
        """Return the tool-result blocks in order."""

        return [
            block for block in self.content if isinstance(block, ToolResultBlock)
        ]

    def is_plain_user_turn(self) -> bool:
        """Return True for a user message that answers no tool calls."""

        return self.role == Role.USER and not self.tool_results()
