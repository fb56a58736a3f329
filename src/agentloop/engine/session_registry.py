"""At most one active agent loop per session."""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from agentloop.domain.exceptions import SessionBusyError
from agentloop.domain.execution_context import ExecutionContext

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Tracks the active agent loop of each session.

    At most one loop may run per session id. A second claim is rejected with
    SessionBusyError rather than queued.
    """

    def __init__(self) -> None:
        self._active: Dict[str, ExecutionContext] = {}
        self._lock = threading.Lock()

    @contextmanager
    def session(
        self, session_id: str, context: ExecutionContext
    ) -> Iterator[ExecutionContext]:
        """Claim a session for the duration of one loop.

        Args:
            session_id: External session identifier.
            context: Context of the loop about to run.

        Yields:
            The claimed context.

        Raises:
            SessionBusyError: If the session already has an active loop.
        """

        with self._lock:
            if session_id in self._active:
                raise SessionBusyError(
                    f"Session {session_id} already has an active request."
                )
            self._active[session_id] = context
        logger.debug("Session claimed", extra={"session_id": session_id})
        try:
            yield context
        finally:
            with self._lock:
                if self._active.get(session_id) is context:
                    del self._active[session_id]
            logger.debug("Session released", extra={"session_id": session_id})

    def abort(self, session_id: str) -> bool:
        """Request cancellation of a session's active loop.

        Returns:
            True if a loop was running and has been asked to stop.
        """

        with self._lock:
            context = self._active.get(session_id)
        if context is None:
            return False
        context.request_abort()
        logger.info("Session abort requested", extra={"session_id": session_id})
        return True

    def is_active(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._active

    def active_sessions(self) -> List[str]:
        with self._lock:
            return sorted(self._active)
