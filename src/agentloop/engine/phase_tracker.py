"""Status notes reporting loop progress to the model."""

from agentloop.domain.messages import StatusNoteBlock
from agentloop.domain.phase import (
    DEFAULT_RESEARCH_ITERATIONS,
    PHASE_GUIDANCE,
    Phase,
    phase_for,
)
from agentloop.stats.pricing import calculate_cost


class PhaseTracker:
    """
    Builds the machine-readable status line appended after each tool round.

    The status note is the only signal telling the model its budget is
    running out; the iteration ceiling remains the hard backstop.

    Args:
        max_iterations: Configured iteration ceiling.
        model_name: Model used for the cost estimate.
        research_iterations: Iterations always reported as research.
    """

    def __init__(
        self,
        max_iterations: int,
        model_name: str,
        research_iterations: int = DEFAULT_RESEARCH_ITERATIONS,
    ) -> None:
        self._max_iterations = max_iterations
        self._model_name = model_name
        self._research_iterations = research_iterations

    def phase(self, iteration: int) -> Phase:
        return phase_for(iteration, self._max_iterations, self._research_iterations)

    def status_note(
        self, iteration: int, input_tokens: int, output_tokens: int
    ) -> StatusNoteBlock:
        """
        Builds the status note for a completed tool round.

        Args:
            iteration: The iteration that produced the round.
            input_tokens: Accumulated prompt tokens so far.
            output_tokens: Accumulated completion tokens so far.

        Returns:
            A StatusNoteBlock describing progress and remaining budget.
        """
        phase = self.phase(iteration)
        cost = calculate_cost(self._model_name, input_tokens, output_tokens)
        text = (
            f"[status] iteration={iteration}/{self._max_iterations} "
            f"phase={phase.value} tokens={input_tokens + output_tokens} "
            f"cost=${cost:.4f} | {PHASE_GUIDANCE[phase]}"
        )
        return StatusNoteBlock(text=text)
