"""Per-invocation memoization of tool results."""

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from agentloop.domain.tool import ToolInvocation

logger = logging.getLogger(__name__)

CACHE_HIT_MARKER = (
    "[cached result: this exact call was already made in this session. "
    "Repeating it returns the same data; try a different approach.]"
)


def build_cache_key(name: str, args: Mapping[str, Any]) -> Optional[str]:
    """Build a canonical cache key for a tool call.

    Keys are sorted and separators fixed so logically identical calls always
    produce byte-identical keys.

    Args:
        name: Tool name.
        args: Tool input arguments.

    Returns:
        The cache key, or None when the arguments cannot be serialized.
    """

    try:
        serialized = json.dumps(
            args,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError):
        logger.debug("Tool input is not serializable", extra={"tool_name": name})
        return None
    return f"{name}:{serialized}"


def mark_cached(result: str) -> str:
    """Annotate a cached result so the model knows it is a repeat."""

    return f"{CACHE_HIT_MARKER}\n{result}"


class ToolResultCache:
    """
    Memoizes tool results for the lifetime of one agent loop invocation.

    Args:
        exempt_tools: Tool names that always bypass the cache.
    """

    def __init__(self, exempt_tools: Optional[Iterable[str]] = None) -> None:
        self._exempt_tools = frozenset(exempt_tools or ())
        self._entries: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def put(self, key: str, value: str) -> None:
        self._entries[key] = value

    def is_exempt(self, name: str) -> bool:
        return name in self._exempt_tools

    def invocation_for(
        self, call_id: str, name: str, args: Dict[str, Any]
    ) -> ToolInvocation:
        """
        Builds a ToolInvocation, attaching a cache key for cacheable tools.

        Args:
            call_id: Tool-use id assigned by the model.
            name: Tool name.
            args: Tool input arguments.

        Returns:
            The invocation; ``cache_key`` is None for exempt or unkeyable calls.
        """
        key = None if self.is_exempt(name) else build_cache_key(name, args)
        return ToolInvocation(id=call_id, name=name, input=args, cache_key=key)

    def lookup(self, invocation: ToolInvocation) -> Optional[str]:
        """Return the cached result for an invocation, if any."""

        if invocation.cache_key is None:
            return None
        return self._entries.get(invocation.cache_key)

    def store(self, invocation: ToolInvocation, value: str) -> None:
        if invocation.cache_key is None:
            return
        self._entries[invocation.cache_key] = value

    def __len__(self) -> int:
        return len(self._entries)
