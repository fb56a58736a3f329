"""Outcome of one agent loop invocation."""

from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field


class LoopStatus(str, Enum):
    """Terminal state of an agent loop invocation."""

    COMPLETED = "completed"
    ABORTED = "aborted"
    BUDGET_EXHAUSTED = "budget_exhausted"


class IterationRecord(BaseModel):
    """Diagnostics for one LLM call made by the loop."""

    iteration_number: int = Field(description="1-based LLM call number.")
    input_tokens: int = Field(default=0, description="Prompt tokens reported.")
    output_tokens: int = Field(default=0, description="Completion tokens reported.")
    duration_ms: float = Field(default=0.0, description="Wall time of the call.")
    stop_reason: Optional[str] = Field(
        default=None, description="Stop reason reported by the provider."
    )


class LoopResult(BaseModel):
    """Outcome of an agent loop invocation (possibly partial)."""

    final_response: str = Field(default="", description="Answer text for the caller.")
    iterations: int = Field(default=0, description="Number of LLM calls made.")
    total_input_tokens: int = Field(default=0)
    total_output_tokens: int = Field(default=0)
    tools_used: Set[str] = Field(
        default_factory=set, description="Distinct tool names invoked."
    )
    status: LoopStatus = Field(default=LoopStatus.COMPLETED)
    records: List[IterationRecord] = Field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens
