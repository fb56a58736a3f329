"""Character-based token estimation for conversation histories."""

import json
import math
from typing import Iterable

from agentloop.domain.messages import (
    ContentBlock,
    Message,
    StatusNoteBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

DEFAULT_CHARS_PER_TOKEN = 4


class UsageEstimator:
    """
    Approximates the token cost of messages from their character counts.

    The estimate only needs to be stable and monotonic in content length.

    Args:
        chars_per_token: Fixed characters-per-token divisor.
    """

    def __init__(self, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> None:
        self._chars_per_token = max(1, chars_per_token)

    def estimate(self, messages: Iterable[Message]) -> int:
        """
        Estimates the token count of a message history.

        Args:
            messages: A Conversation or any iterable of messages.

        Returns:
            The estimated number of tokens.
        """
        total_chars = sum(self.message_chars(message) for message in messages)
        return math.ceil(total_chars / self._chars_per_token)

    def estimate_text(self, text: str) -> int:
        return math.ceil(len(text) / self._chars_per_token)

    def message_chars(self, message: Message) -> int:
        return sum(self._block_chars(block) for block in message.content)

    @staticmethod
    def _block_chars(block: ContentBlock) -> int:
        if isinstance(block, (TextBlock, StatusNoteBlock)):
            return len(block.text)
        if isinstance(block, ToolResultBlock):
            return len(block.content)
        if isinstance(block, ToolUseBlock):
            try:
                rendered = json.dumps(block.input, sort_keys=True, default=str)
            except (TypeError, ValueError):
                rendered = str(block.input)
            return len(block.name) + len(rendered)
        return 0
