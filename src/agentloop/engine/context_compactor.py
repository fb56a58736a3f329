"""Lossy compaction of old tool results to fit a token budget."""

import logging
from typing import List, Optional

from agentloop.domain.conversation import Conversation
from agentloop.domain.messages import ContentBlock, Message, Role, ToolResultBlock
from agentloop.engine.usage_estimator import UsageEstimator

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_TAIL_SIZE = 4
DEFAULT_MIN_LENGTH = 500
DEFAULT_PREFIX_LENGTH = 200
TRIMMED_MARKER = "[trimmed to save context]"


class ContextCompactor:
    """
    Rewrites older tool results into short placeholders until a conversation
    fits its token budget.

    Compaction is irreversible within a session. Messages are never removed or
    reordered, and the most recent ``protected_tail_size`` messages are never
    touched.

    Args:
        estimator: Token estimator used to measure the conversation.
        protected_tail_size: Number of most recent messages left intact.
        min_length: Tool results at or below this length are left intact.
        prefix_length: Characters of a compacted result that are kept.
    """

    def __init__(
        self,
        estimator: Optional[UsageEstimator] = None,
        protected_tail_size: int = DEFAULT_PROTECTED_TAIL_SIZE,
        min_length: int = DEFAULT_MIN_LENGTH,
        prefix_length: int = DEFAULT_PREFIX_LENGTH,
    ) -> None:
        if prefix_length >= min_length:
            raise ValueError("prefix_length must be smaller than min_length.")
        self._estimator = estimator or UsageEstimator()
        self._protected_tail_size = max(0, protected_tail_size)
        self._min_length = min_length
        self._prefix_length = prefix_length

    def compact(self, conversation: Conversation, token_budget: int) -> Conversation:
        """
        Compacts the conversation in place until it fits ``token_budget``.

        Args:
            conversation: The conversation to compact.
            token_budget: Maximum estimated token count.

        Returns:
            The same conversation instance, possibly with rewritten messages.
        """
        estimate = self._estimator.estimate(conversation)
        if estimate <= token_budget:
            return conversation

        eligible = len(conversation) - self._protected_tail_size
        compacted = 0
        for index in range(max(0, eligible)):
            message = conversation[index]
            replacement = self._compact_message(message)
            if replacement is None:
                continue
            conversation.replace(index, replacement)
            compacted += 1
            estimate = self._estimator.estimate(conversation)
            if estimate <= token_budget:
                break

        logger.info(
            "Context compaction finished",
            extra={
                "compacted_messages": compacted,
                "token_estimate": estimate,
                "token_budget": token_budget,
            },
        )
        return conversation

    def _compact_message(self, message: Message) -> Optional[Message]:
        """Return a compacted copy of ``message`` or None when nothing changes."""

        if message.role != Role.USER:
            return None
        changed = False
        blocks: List[ContentBlock] = []
        for block in message.content:
            if isinstance(block, ToolResultBlock) and self._is_compactable(block):
                blocks.append(block.model_copy(update={"content": self._trim(block)}))
                changed = True
            else:
                blocks.append(block)
        if not changed:
            return None
        return message.model_copy(update={"content": blocks})

    def _is_compactable(self, block: ToolResultBlock) -> bool:
        return len(block.content) > self._min_length and not block.content.endswith(
            TRIMMED_MARKER
        )

    def _trim(self, block: ToolResultBlock) -> str:
        removed = len(block.content) - self._prefix_length
        return (
            f"{block.content[: self._prefix_length]}\n"
            f"...({removed} characters removed) {TRIMMED_MARKER}"
        )
