"""Per-request context and cooperative cancellation."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class CancellationToken:
    """
    Cooperative cancellation flag shared between a loop and its controller.

    The loop only polls the flag; it never clears it.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def request(self) -> None:
        """Marks cancellation as requested."""
        self._event.set()

    @property
    def requested(self) -> bool:
        return self._event.is_set()


@dataclass
class ExecutionContext:
    """
    Per-request context shared with the loop and every tool call.

    Attributes:
        session_id: External session identifier (e.g. a chat channel id).
        user_id: Identifier of the requesting user.
        cancellation: Cooperative cancellation token polled by the loop.
        logger: Logging sink for this request; pair it with ``log_extra``.
        metadata: Free-form values tools may need (workspace paths, tokens).
    """

    session_id: str
    user_id: str
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    logger: Optional[logging.Logger] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = logging.getLogger("agentloop.session")

    @property
    def abort_requested(self) -> bool:
        return self.cancellation.requested

    @abort_requested.setter
    def abort_requested(self, value: bool) -> None:
        if not value:
            raise ValueError("Abort requests cannot be withdrawn.")
        self.cancellation.request()

    def request_abort(self) -> None:
        """Asks the running loop to stop at its next checkpoint."""
        self.cancellation.request()

    def log_extra(self, **fields: Any) -> Dict[str, Any]:
        """Return structured log fields for this context plus ``fields``."""

        extra: Dict[str, Any] = {
            "session_id": self.session_id,
            "user_id": self.user_id,
        }
        extra.update(fields)
        return extra
