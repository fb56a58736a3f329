"""Exception taxonomy for the agent loop."""


class AgentLoopError(Exception):
    """Base exception for the agentloop system."""

    pass


class LLMError(AgentLoopError):
    """Base exception for LLM interaction failures.

    These are fatal to the loop and propagate to the caller unchanged.
    """

    pass


class SchemaError(LLMError):
    """Provider response could not be interpreted."""

    pass


class RateLimitError(LLMError):
    """Provider returned 429 Rate Limit Exceeded."""

    pass


class ApiKeyError(LLMError):
    """Provider returned 401/403 Authentication Error."""

    pass


class ContextLengthError(LLMError):
    """Prompt exceeded model context limits."""

    pass


class LLMTransportError(LLMError):
    """Provider was unreachable, timed out, or failed server-side."""

    pass


class ToolError(AgentLoopError):
    """Base exception for tool execution failures.

    The agent loop never propagates these; they are fed back to the model.
    """

    pass


class UnknownToolError(ToolError):
    """The model requested a tool that is not registered."""

    pass


class ToolTimeoutError(ToolError):
    """A tool did not finish within its configured timeout."""

    pass


class SessionBusyError(AgentLoopError):
    """A loop is already running for the requested session."""

    pass


class ConversationError(AgentLoopError):
    """An operation would break a conversation invariant."""

    pass
