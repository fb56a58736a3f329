"""In-memory per-user usage totals."""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from agentloop.domain.loop_result import LoopResult
from agentloop.stats.pricing import calculate_cost


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserUsage(BaseModel):
    """Accumulated usage for a single user."""

    api_calls: int = Field(default=0, description="LLM calls made for the user.")
    input_tokens: int = Field(default=0, description="Total input tokens.")
    output_tokens: int = Field(default=0, description="Total output tokens.")
    estimated_cost: float = Field(default=0.0, description="Estimated cost in USD.")
    first_seen: Optional[datetime] = Field(
        default=None, description="Time of the first recorded loop."
    )
    last_active: Optional[datetime] = Field(
        default=None, description="Time of the most recent recorded loop."
    )


class UsageLedger:
    """In-memory per-user usage totals for agent loop invocations."""

    def __init__(self) -> None:
        """Initialize an empty ledger."""

        self._users: Dict[str, UserUsage] = {}
        self._lock = threading.Lock()

    def record(self, user_id: str, result: LoopResult, model: str) -> UserUsage:
        """Add the usage of one loop invocation to a user's totals.

        Args:
            user_id: User the loop ran for.
            result: Result of the finished loop.
            model: Model name used to estimate cost.

        Returns:
            A snapshot of the user's updated totals.
        """

        cost = calculate_cost(
            model, result.total_input_tokens, result.total_output_tokens
        )
        now = _utcnow()
        with self._lock:
            usage = self._users.get(user_id)
            if usage is None:
                usage = UserUsage(first_seen=now)
                self._users[user_id] = usage
            usage.api_calls += result.iterations
            usage.input_tokens += result.total_input_tokens
            usage.output_tokens += result.total_output_tokens
            usage.estimated_cost += cost
            usage.last_active = now
            return usage.model_copy()

    def get_usage_stats(self, user_id: str) -> UserUsage:
        """Return a user's totals; unknown users get zeroed stats."""

        with self._lock:
            usage = self._users.get(user_id)
            return usage.model_copy() if usage is not None else UserUsage()

    def get_global_stats(self) -> Dict[str, Any]:
        """Return totals aggregated over all users."""

        with self._lock:
            users = list(self._users.values())
        return {
            "users": len(users),
            "api_calls": sum(usage.api_calls for usage in users),
            "input_tokens": sum(usage.input_tokens for usage in users),
            "output_tokens": sum(usage.output_tokens for usage in users),
            "estimated_cost": sum(usage.estimated_cost for usage in users),
        }
