"""Bounded, ordered conversation history."""

from typing import Iterable, Iterator, List, Optional

from agentloop.domain.exceptions import ConversationError
from agentloop.domain.messages import Message, Role

DEFAULT_MAX_ENTRIES = 100
# Opening turn plus one tool call and its results.
MIN_ENTRIES = 3


class Conversation:
    """
    Ordered message history owned by a single loop invocation.

    The history always starts with a user message and never holds more than
    ``max_entries`` messages. Callers only append; the context compactor may
    replace an existing message in place.

    Args:
        messages: Initial messages, oldest first.
        max_entries: Upper bound on stored messages.
    """

    def __init__(
        self,
        messages: Optional[Iterable[Message]] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        if max_entries < MIN_ENTRIES:
            raise ValueError(f"max_entries must be at least {MIN_ENTRIES}.")
        self._max_entries = max_entries
        self._messages: List[Message] = []
        for message in messages or ():
            self.append(message)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def messages(self) -> List[Message]:
        """Return a shallow copy of the messages, oldest first."""

        return list(self._messages)

    def append(self, message: Message) -> None:
        """
        Appends a message and enforces the size bound.

        Args:
            message: The message to append.

        Raises:
            ConversationError: If the first message is not a user message.
        """
        if not self._messages and message.role != Role.USER:
            raise ConversationError("A conversation must start with a user message.")
        self._messages.append(message)
        self._enforce_bound()

    def replace(self, index: int, message: Message) -> None:
        """
        Replaces the message at ``index`` without changing order or length.

        Args:
            index: Position of the message to replace.
            message: The replacement message; must keep the same role.
        """
        current = self._messages[index]
        if current.role != message.role:
            raise ConversationError("Replacement messages must keep their role.")
        self._messages[index] = message

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def _enforce_bound(self) -> None:
        while len(self._messages) > self._max_entries:
            if not self._drop_oldest():
                break

    def _drop_oldest(self) -> bool:
        """
        Drops the oldest removable messages without breaking the history.

        The opening user turn stays pinned while the oldest tool round after
        it (the assistant call plus the results answering it) is dropped.
        Once the opening turn has been answered without tools, the whole
        turn goes. The newest message is never dropped.

        Returns:
            False when nothing can be dropped.
        """
        messages = self._messages
        newest = len(messages) - 1
        if newest < 1:
            return False

        if messages[1].role == Role.ASSISTANT and messages[1].tool_uses():
            end = 2
            if (
                end <= newest
                and messages[end].role == Role.USER
                and messages[end].tool_results()
            ):
                end += 1
            # Dropped messages must all be older than the newest one.
            if end <= newest:
                del messages[1:end]
                return True

        for index in range(1, newest + 1):
            if messages[index].is_plain_user_turn():
                del messages[:index]
                return True
        return False

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
