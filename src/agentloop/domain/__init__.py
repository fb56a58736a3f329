from agentloop.domain.conversation import Conversation
from agentloop.domain.execution_context import CancellationToken, ExecutionContext
from agentloop.domain.loop_result import IterationRecord, LoopResult, LoopStatus
from agentloop.domain.messages import (
    ContentBlock,
    Message,
    Role,
    StatusNoteBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from agentloop.domain.phase import Phase, phase_for
from agentloop.domain.tool import BaseTool, FunctionTool, ToolInvocation

__all__ = [
    "BaseTool",
    "CancellationToken",
    "ContentBlock",
    "Conversation",
    "ExecutionContext",
    "FunctionTool",
    "IterationRecord",
    "LoopResult",
    "LoopStatus",
    "Message",
    "Phase",
    "Role",
    "StatusNoteBlock",
    "TextBlock",
    "ToolInvocation",
    "ToolResultBlock",
    "ToolUseBlock",
    "phase_for",
]
