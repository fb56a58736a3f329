"""Coarse lifecycle phases derived from the iteration count."""

from enum import Enum

DEFAULT_RESEARCH_ITERATIONS = 3
ACTION_RATIO = 0.7
WRAP_UP_RATIO = 0.9


class Phase(str, Enum):
    """Lifecycle phase reported to the model in status notes."""

    RESEARCH = "research"
    ACTION = "action"
    WRAP_UP = "wrap_up"
    STOP = "stop"


PHASE_GUIDANCE = {
    Phase.RESEARCH: "Gather the information you need.",
    Phase.ACTION: "Act on what you have learned.",
    Phase.WRAP_UP: "Finish the current step and prepare your answer.",
    Phase.STOP: "Stop calling tools and give your final answer now.",
}


def phase_for(
    iteration: int,
    max_iterations: int,
    research_iterations: int = DEFAULT_RESEARCH_ITERATIONS,
) -> Phase:
    """Return the phase for an iteration.

    Args:
        iteration: 1-based iteration number.
        max_iterations: Configured iteration ceiling.
        research_iterations: Iterations always treated as research.

    Returns:
        The lifecycle phase.
    """

    if iteration <= research_iterations:
        return Phase.RESEARCH
    ratio = iteration / max(1, max_iterations)
    if ratio < ACTION_RATIO:
        return Phase.ACTION
    if ratio < WRAP_UP_RATIO:
        return Phase.WRAP_UP
    return Phase.STOP
