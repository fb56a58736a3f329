"""The agentic tool-execution loop."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, TypedDict

from langgraph.graph import END, StateGraph

from agentloop.config import LoopConfig
from agentloop.domain.conversation import Conversation
from agentloop.domain.execution_context import ExecutionContext
from agentloop.domain.loop_result import IterationRecord, LoopResult, LoopStatus
from agentloop.domain.messages import (
    ContentBlock,
    Message,
    Role,
    StatusNoteBlock,
)
from agentloop.engine.context_compactor import ContextCompactor
from agentloop.engine.phase_tracker import PhaseTracker
from agentloop.engine.tool_result_cache import ToolResultCache
from agentloop.engine.tool_runner import ToolExecutor, ToolRunner
from agentloop.engine.usage_estimator import UsageEstimator
from agentloop.llm.llm_client import LLMClient
from agentloop.llm.llm_request import LLMRequest
from agentloop.llm.llm_response import LLMResponse
from agentloop.stats.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)

TextCallback = Callable[[str], None]
ToolStartCallback = Callable[[List[str]], None]

ABORT_NOTE = "[aborted] The user stopped this request; remaining tools were not run."
SUMMARY_INSTRUCTION = (
    "You have reached the tool-use limit for this request. Do not call any "
    "more tools. Using only the information already gathered above, write "
    "your final answer now: what you found, what you did, and what is left."
)


class LoopState(TypedDict, total=False):
    conversation: Conversation
    context: ExecutionContext
    runner: ToolRunner
    system_prompt: str
    on_text: Optional[TextCallback]
    on_tool_start: Optional[ToolStartCallback]
    iteration: int
    input_tokens: int
    output_tokens: int
    tools_used: Set[str]
    records: List[IterationRecord]
    response: Optional[LLMResponse]
    partial_text: str
    final_response: str
    status: Optional[LoopStatus]


class AgentLoop:
    """
    Drives one conversation through repeated LLM calls and tool rounds.

    The loop is a LangGraph state machine: ``prepare`` checks for an abort
    and compacts the context, ``reason`` calls the model, ``act`` runs the
    requested tools, and ``summarize`` makes the single tool-free call once
    the iteration ceiling is reached.

    Args:
        llm_client: Client used for every LLM call.
        tool_executor: Executor performing tool side effects.
        tool_catalog: OpenAI-style definitions of the callable tools.
        config: Loop budgets and thresholds.
        usage_ledger: Optional ledger receiving per-user usage totals.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        tool_executor: ToolExecutor,
        tool_catalog: Sequence[Dict[str, Any]],
        config: Optional[LoopConfig] = None,
        usage_ledger: Optional[UsageLedger] = None,
    ) -> None:
        self.llm_client = llm_client
        self.tool_executor = tool_executor
        self.tool_catalog = list(tool_catalog)
        self.config = config or LoopConfig()
        self.usage_ledger = usage_ledger
        self.compactor = ContextCompactor(
            estimator=UsageEstimator(self.config.chars_per_token),
            protected_tail_size=self.config.protected_tail_size,
            min_length=self.config.compaction_min_length,
            prefix_length=self.config.compaction_prefix_length,
        )
        self.phase_tracker = PhaseTracker(
            max_iterations=self.config.max_iterations,
            model_name=self.config.model_name,
            research_iterations=self.config.research_iterations,
        )
        self.graph = self._build_graph()

    def _build_graph(self):
        """
        Builds the prepare-reason-act loop with its summary fallback.

        Returns:
            The compiled LangGraph graph executor.
        """
        builder = StateGraph(LoopState)
        builder.add_node("prepare", self.prepare)
        builder.add_node("reason", self.reason)
        builder.add_node("act", self.act)
        builder.add_node("summarize", self.summarize)

        builder.set_entry_point("prepare")
        builder.add_conditional_edges(
            "prepare",
            self.after_prepare,
            {"reason": "reason", "summarize": "summarize", "end": END},
        )
        builder.add_conditional_edges(
            "reason", self.after_reason, {"act": "act", "end": END}
        )
        builder.add_conditional_edges(
            "act", self.after_act, {"prepare": "prepare", "end": END}
        )
        builder.add_edge("summarize", END)

        return builder.compile()

    def run(
        self,
        conversation: Conversation,
        system_prompt: str,
        context: ExecutionContext,
        on_text: Optional[TextCallback] = None,
        on_tool_start: Optional[ToolStartCallback] = None,
    ) -> LoopResult:
        """
        Runs the loop until completion, abort, or budget exhaustion.

        Args:
            conversation: History to continue; mutated in place.
            system_prompt: System prompt for every LLM call.
            context: Per-request context holding the cancellation token.
            on_text: Called with interim model text shown alongside tool calls.
            on_tool_start: Called with the tool names of each round.

        Returns:
            The (possibly partial) loop result.

        Raises:
            LLMError: When an LLM call fails.
        """
        context.logger.info(
            "Agent loop start",
            extra=context.log_extra(
                messages=len(conversation),
                max_iterations=self.config.max_iterations,
            ),
        )
        # The result cache lives exactly as long as this invocation.
        runner = ToolRunner(
            self.tool_executor,
            ToolResultCache(self.config.cache_exempt_tools),
            truncation_limit=self.config.result_truncation_limit,
        )
        initial_state: LoopState = {
            "conversation": conversation,
            "context": context,
            "runner": runner,
            "system_prompt": system_prompt,
            "on_text": on_text,
            "on_tool_start": on_tool_start,
            "iteration": 0,
            "input_tokens": 0,
            "output_tokens": 0,
            "tools_used": set(),
            "records": [],
            "response": None,
            "partial_text": "",
            "final_response": "",
            "status": None,
        }
        state = self.graph.invoke(
            initial_state,
            config={"recursion_limit": 3 * self.config.max_iterations + 10},
        )

        status = state.get("status") or LoopStatus.COMPLETED
        final_response = state.get("final_response", "")
        if status == LoopStatus.ABORTED and not final_response:
            final_response = state.get("partial_text", "")
        result = LoopResult(
            final_response=final_response,
            iterations=state["iteration"],
            total_input_tokens=state["input_tokens"],
            total_output_tokens=state["output_tokens"],
            tools_used=set(state["tools_used"]),
            status=status,
            records=list(state["records"]),
        )
        if self.usage_ledger is not None:
            self.usage_ledger.record(context.user_id, result, self.config.model_name)
        context.logger.info(
            "Agent loop finished",
            extra=context.log_extra(
                status=result.status.value,
                iterations=result.iterations,
                input_tokens=result.total_input_tokens,
                output_tokens=result.total_output_tokens,
                tools_used=sorted(result.tools_used),
            ),
        )
        return result

    def prepare(self, state: LoopState) -> Dict[str, Any]:
        """
        Checks for cancellation and compacts the context before an LLM call.

        Args:
            state: The current loop state.

        Returns:
            State updates; sets ABORTED when cancellation was requested.
        """
        context = state["context"]
        if context.abort_requested:
            context.logger.info(
                "Agent loop aborted before LLM call",
                extra=context.log_extra(iteration=state["iteration"]),
            )
            return {"status": LoopStatus.ABORTED}
        self.compactor.compact(state["conversation"], self.config.token_budget)
        return {}

    def after_prepare(self, state: LoopState) -> str:
        if state.get("status") == LoopStatus.ABORTED:
            return "end"
        if state["iteration"] >= self.config.max_iterations:
            return "summarize"
        return "reason"

    def reason(self, state: LoopState) -> Dict[str, Any]:
        """
        Calls the model with the conversation and the tool catalog.

        Args:
            state: The current loop state.

        Returns:
            State updates holding the response and usage totals.
        """
        conversation = state["conversation"]
        context = state["context"]
        iteration = state["iteration"] + 1
        response, updates = self._call_llm(state, iteration, self.tool_catalog)

        tool_uses = response.tool_uses()
        if not tool_uses:
            updates.update(
                {"status": LoopStatus.COMPLETED, "final_response": response.text()}
            )
            return updates

        conversation.append(response.to_message())
        text = response.text()
        on_text = state.get("on_text")
        if on_text is not None and len(text.strip()) >= self.config.min_text_length:
            on_text(text)
        on_tool_start = state.get("on_tool_start")
        if on_tool_start is not None:
            on_tool_start([block.name for block in tool_uses])
        context.logger.debug(
            "Model requested tools",
            extra=context.log_extra(
                iteration=iteration, tools=[block.name for block in tool_uses]
            ),
        )
        if text:
            updates["partial_text"] = text
        return updates

    def after_reason(self, state: LoopState) -> str:
        if state.get("status") == LoopStatus.COMPLETED:
            return "end"
        return "act"

    def act(self, state: LoopState) -> Dict[str, Any]:
        """
        Runs the tools requested in the last response, in request order.

        Cancellation is checked before each tool; a tool already started is
        never interrupted.

        Args:
            state: The current loop state.

        Returns:
            State updates; sets ABORTED when cancellation was observed.
        """
        conversation = state["conversation"]
        context = state["context"]
        runner = state["runner"]
        response = state["response"]
        iteration = state["iteration"]
        tools_used = set(state["tools_used"])

        blocks: List[ContentBlock] = []
        aborted = False
        for tool_use in response.tool_uses():
            if context.abort_requested:
                aborted = True
                break
            invocation = runner.cache.invocation_for(
                tool_use.id, tool_use.name, tool_use.input
            )
            outcome = runner.run(invocation, context)
            tools_used.add(tool_use.name)
            blocks.append(outcome.block)
            context.logger.info(
                "Tool call finished",
                extra=context.log_extra(
                    iteration=iteration,
                    tool_name=tool_use.name,
                    input_keys=sorted(tool_use.input),
                    cached=outcome.cached,
                    failed=outcome.failed,
                    truncated=outcome.block.truncated,
                    duration_ms=round(outcome.duration_ms, 1),
                ),
            )

        updates: Dict[str, Any] = {"tools_used": tools_used}
        if aborted:
            blocks.append(StatusNoteBlock(text=ABORT_NOTE))
            updates["status"] = LoopStatus.ABORTED
            context.logger.info(
                "Agent loop aborted during tool round",
                extra=context.log_extra(
                    iteration=iteration, completed_tools=len(blocks) - 1
                ),
            )
        else:
            blocks.append(
                self.phase_tracker.status_note(
                    iteration, state["input_tokens"], state["output_tokens"]
                )
            )
        conversation.append(Message(role=Role.USER, content=blocks))
        return updates

    def after_act(self, state: LoopState) -> str:
        if state.get("status") == LoopStatus.ABORTED:
            return "end"
        return "prepare"

    def summarize(self, state: LoopState) -> Dict[str, Any]:
        """
        Makes one extra tool-free call asking for a summary of what was
        gathered, so the caller always receives a usable answer.

        Args:
            state: The current loop state.

        Returns:
            State updates marking the budget as exhausted.
        """
        context = state["context"]
        iteration = state["iteration"] + 1
        context.logger.info(
            "Iteration budget exhausted; requesting final summary",
            extra=context.log_extra(iteration=iteration),
        )
        messages = self._with_summary_instruction(state["conversation"].messages)
        response, updates = self._call_llm(state, iteration, [], messages=messages)
        final_response = response.text().strip() or (
            f"(Reached the maximum of {self.config.max_iterations} tool iterations "
            "without a final answer.)"
        )
        updates.update(
            {
                "status": LoopStatus.BUDGET_EXHAUSTED,
                "final_response": final_response,
            }
        )
        return updates

    def _call_llm(
        self,
        state: LoopState,
        iteration: int,
        tools: List[Dict[str, Any]],
        messages: Optional[List[Message]] = None,
    ) -> tuple[LLMResponse, Dict[str, Any]]:
        """Make one LLM call and fold its usage into state updates."""

        context = state["context"]
        request = LLMRequest(
            system_prompt=state["system_prompt"],
            messages=(
                messages if messages is not None else state["conversation"].messages
            ),
            tools=tools,
            metadata={
                "session_id": context.session_id,
                "user_id": context.user_id,
                "iteration": iteration,
            },
        )
        started = time.perf_counter()
        response = self.llm_client.complete(request)
        duration_ms = (time.perf_counter() - started) * 1000

        record = IterationRecord(
            iteration_number=iteration,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=duration_ms,
            stop_reason=response.stop_reason.value,
        )
        context.logger.info(
            "LLM call complete",
            extra=context.log_extra(
                iteration=iteration,
                stop_reason=record.stop_reason,
                input_tokens=record.input_tokens,
                output_tokens=record.output_tokens,
                duration_ms=round(duration_ms, 1),
            ),
        )
        updates: Dict[str, Any] = {
            "iteration": iteration,
            "response": response,
            "input_tokens": state["input_tokens"] + record.input_tokens,
            "output_tokens": state["output_tokens"] + record.output_tokens,
            "records": list(state["records"]) + [record],
        }
        return response, updates

    @staticmethod
    def _with_summary_instruction(messages: List[Message]) -> List[Message]:
        """Return request messages ending with the summary instruction.

        The instruction is sent with the call but not stored in the
        conversation.
        """

        note = StatusNoteBlock(text=SUMMARY_INSTRUCTION)
        if messages and messages[-1].role == Role.USER:
            last = messages[-1]
            return messages[:-1] + [
                last.model_copy(update={"content": list(last.content) + [note]})
            ]
        return messages + [Message(role=Role.USER, content=[note])]


def run_loop(
    conversation: Conversation,
    system_prompt: str,
    context: ExecutionContext,
    config: LoopConfig,
    llm_client: LLMClient,
    tool_executor: ToolExecutor,
    tool_catalog: Sequence[Dict[str, Any]] = (),
    on_text: Optional[TextCallback] = None,
    on_tool_start: Optional[ToolStartCallback] = None,
    usage_ledger: Optional[UsageLedger] = None,
) -> LoopResult:
    """Run a single agent loop invocation.

    Args:
        conversation: History to continue; mutated in place.
        system_prompt: System prompt for every LLM call.
        context: Per-request context holding the cancellation token.
        config: Loop budgets and thresholds.
        llm_client: Client used for every LLM call.
        tool_executor: Executor performing tool side effects.
        tool_catalog: OpenAI-style definitions of the callable tools.
        on_text: Optional interim-text callback.
        on_tool_start: Optional tool-round callback.
        usage_ledger: Optional ledger receiving usage totals.

    Returns:
        The (possibly partial) loop result.
    """

    loop = AgentLoop(
        llm_client,
        tool_executor,
        tool_catalog,
        config=config,
        usage_ledger=usage_ledger,
    )
    return loop.run(
        conversation,
        system_prompt,
        context,
        on_text=on_text,
        on_tool_start=on_tool_start,
    )
