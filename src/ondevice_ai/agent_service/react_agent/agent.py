# main ReAct agent: reason -> act -> observe loop over the available tools

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from ondevice_ai.agent_service.common.system_prompts.react_prompts import ReActPrompts
from ondevice_ai.agent_service.common.tools.base import ToolDescriptor
from ondevice_ai.agent_service.common.types.agent_outputs import (
    AgentAction,
    AgentConfig,
    AgentPhase,
    AgentResult,
    AgentStatus,
    AgentStep,
    Fallback,
    NeedsRetry,
    ParsedResponse,
    StopReason,
)
from ondevice_ai.agent_service.react_agent.output_parser import ReActOutputParser
from ondevice_ai.common.exceptions import CompletionError, ToolError
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.common.services.llm_service.llm_client.protocols import ChatCompleterProtocol

T = TypeVar("T")

StatusCallback = Callable[[AgentStatus], None]

UNABLE_TO_COMPLETE = "I was unable to complete this request. Please try rephrasing it or breaking it into smaller steps."
CANCELLED_ANSWER = "The request was cancelled before it finished."

class _RunCancelled(Exception):
    """Internal signal: the caller's cancel event fired during an awaited call."""

class AgentExecutor():
    """
    Bounded ReAct loop: each iteration asks the LLM for a Thought plus either an Action or a Final Answer,
    runs at most one tool, and feeds the observation back in the next prompt.

    Stops on:
    - a final answer (success)
    - max_iterations without a final answer
    - timeout_ms elapsed, checked before every iteration after the first (a slow iteration is not interrupted)
    - a parse failure that survives retry_attempts regenerations (raw text returned as the answer)
    - a CompletionError from the LLM (recorded as the final step)
    - the optional cancel event (in-flight LLM/tool call is abandoned)

    Progress can be observed through the optional on_status callback of run().
    The executor holds no per-run state, so concurrent run() calls are independent.
    """

    def __init__(
        self,
        tools: Iterable[ToolDescriptor],
        llm_client: ChatCompleterProtocol,
        config: Optional[AgentConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.llm_client = llm_client
        self.config = config or AgentConfig()
        self.parser = ReActOutputParser()
        self._clock = clock
        self.update_available_tools(tools)

    # =====================================================================
    # Configuration
    # =====================================================================

    @property
    def available_tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def update_available_tools(self, tools: Iterable[ToolDescriptor]) -> None:
        """Replace the tool set; applies to runs started afterwards. First occurrence of a name wins."""
        resolved: dict[str, ToolDescriptor] = {}
        for tool in tools:
            resolved.setdefault(tool.name, tool)
        self._tools = resolved

    def get_config(self) -> AgentConfig:
        return self.config.model_copy()

    def update_config(self, **changes: Any) -> AgentConfig:
        self.config = AgentConfig.model_validate({**self.config.model_dump(), **changes})
        return self.get_config()

    # =====================================================================
    # Main loop
    # =====================================================================

    async def run(
        self,
        user_query: str,
        cancel_event: Optional[asyncio.Event] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> AgentResult:
        """
        Run the loop to completion.
        `on_status`, if given, is called synchronously as the run progresses: when each iteration starts
        reasoning, before a tool is invoked, after every recorded step and once when the run ends.
        """
        config = self.config
        tools = dict(self._tools)
        system_prompt = ReActPrompts.build_system_prompt(list(tools.values()))
        started = self._clock()
        steps: list[AgentStep] = []

        def notify(phase: AgentPhase, **fields: Any) -> None:
            if on_status is not None:
                on_status(AgentStatus(phase=phase, **fields))

        def record(step: AgentStep) -> None:
            steps.append(step)
            notify(AgentPhase.STEP_COMPLETED, iteration=step.iteration, step=step)

        def finish(success: bool, answer: str, reason: StopReason) -> AgentResult:
            elapsed_ms = int((self._clock() - started) * 1000)
            logger.info(f"Agent run finished: reason={reason.value}, steps={len(steps)}, elapsed={elapsed_ms}ms")
            notify(AgentPhase.DONE, iteration=steps[-1].iteration if steps else 0, stop_reason=reason)
            return AgentResult(
                success=success,
                final_answer=answer,
                steps=list(steps),
                stop_reason=reason,
                execution_time_ms=elapsed_ms,
            )

        logger.info(f"Agent run started with {len(tools)} tools: {user_query[:80]}")

        try:
            for iteration in range(1, config.max_iterations + 1):
                if cancel_event is not None and cancel_event.is_set():
                    raise _RunCancelled()
                if iteration > 1 and (self._clock() - started) * 1000 >= config.timeout_ms:
                    logger.warning(f"Agent run timed out after {iteration - 1} iterations")
                    notice = f"(Stopped: the {config.timeout_ms} ms time limit was reached before a final answer.)"
                    return finish(False, f"{self._best_effort_answer(steps)}\n\n{notice}", StopReason.TIMEOUT)

                notify(AgentPhase.REASONING, iteration=iteration)
                user_prompt = ReActPrompts.build_transcript(user_query, steps)

                # Reasoning, with parse retries against the same prompt
                try:
                    response, fallback = await self._reason(system_prompt, user_prompt, config.retry_attempts, cancel_event)
                except CompletionError as e:
                    logger.error(f"LLM completion failed on iteration {iteration}: {e}")
                    record(AgentStep(iteration=iteration, observation=f"Error: LLM completion failed: {e}"))
                    return finish(
                        False,
                        f"I encountered an error while processing your request: {e}",
                        StopReason.COMPLETION_ERROR,
                    )

                if fallback is not None:
                    logger.warning(f"Unparseable LLM output on iteration {iteration}: {fallback.reason}")
                    record(AgentStep(
                        iteration=iteration,
                        observation=f"Error: could not parse response ({fallback.reason})",
                    ))
                    answer = fallback.raw if fallback.raw.strip() else UNABLE_TO_COMPLETE
                    return finish(False, answer, StopReason.PARSE_FAILURE)

                # Final answer
                if response.final_answer is not None:
                    record(AgentStep(iteration=iteration, thought=response.thought))
                    return finish(True, response.final_answer, StopReason.FINAL_ANSWER)

                # Acting -> Observing
                if response.action is not None:
                    notify(AgentPhase.ACTING, iteration=iteration, current_tool=response.action.tool)
                    observation = await self._act(response.action, tools, cancel_event)
                    record(AgentStep(
                        iteration=iteration,
                        thought=response.thought,
                        action=response.action,
                        observation=observation,
                    ))
                    continue

                # thought only, keep reasoning
                record(AgentStep(iteration=iteration, thought=response.thought))

        except _RunCancelled:
            logger.info("Agent run cancelled by caller")
            return finish(False, CANCELLED_ANSWER, StopReason.CANCELLED)

        logger.warning(f"Agent reached max iterations ({config.max_iterations}) without a final answer")
        return finish(False, self._best_effort_answer(steps), StopReason.MAX_ITERATIONS)

    async def _reason(
        self,
        system_prompt: str,
        user_prompt: str,
        retry_attempts: int,
        cancel_event: Optional[asyncio.Event],
    ) -> tuple[Optional[ParsedResponse], Optional[Fallback]]:
        """Parse -> Retry -> Fallback. Returns (response, None) on success or (None, fallback) when retries run out."""
        attempt = 0
        while True:
            raw = await self._cancellable(
                self.llm_client.acomplete(system_prompt=system_prompt, user_prompt=user_prompt),
                cancel_event,
            )
            outcome = self.parser.parse(raw, attempt=attempt, retry_attempts=retry_attempts)
            if isinstance(outcome, NeedsRetry):
                attempt += 1
                logger.info(f"Parse failed ({outcome.reason}), regenerating (attempt {attempt}/{retry_attempts})")
                continue
            if isinstance(outcome, Fallback):
                return None, outcome
            return outcome.response, None

    async def _act(
        self,
        action: AgentAction,
        tools: dict[str, ToolDescriptor],
        cancel_event: Optional[asyncio.Event],
    ) -> str:
        """Run one tool and return the observation. Tool failures never abort the run."""
        tool = tools.get(action.tool)
        if tool is None:
            available = ", ".join(tools) or "none"
            logger.warning(f"LLM requested unknown tool: {action.tool}")
            return f"Error: Tool '{action.tool}' not found. Available tools: {available}"

        logger.info(f"Invoking tool {tool.name}")
        try:
            return await self._cancellable(tool.invoke(action.argument_string()), cancel_event)
        except _RunCancelled:
            raise
        except ToolError as e:
            logger.warning(f"Tool {tool.name} failed: {e.message}")
            return f"Error: {e.message}"
        except Exception as e:
            logger.error(f"Tool {tool.name} raised unexpectedly: {e}")
            return f"Error: {e}"

    async def _cancellable(self, call: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
        """Await call, abandoning it if cancel_event is set first."""
        if cancel_event is None:
            return await call
        if cancel_event.is_set():
            # the coroutine was already created; close it so it isn't reported as never awaited
            close = getattr(call, "close", None)
            if close is not None:
                close()
            raise _RunCancelled()

        call_task = asyncio.ensure_future(call)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        abandoned = False
        try:
            await asyncio.wait({call_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not call_task.done():
                abandoned = True
                call_task.cancel()
                try:
                    await call_task
                except asyncio.CancelledError:
                    pass
        if abandoned:
            raise _RunCancelled()
        return call_task.result()

    def _best_effort_answer(self, steps: list[AgentStep]) -> str:
        for step in reversed(steps):
            if step.thought:
                return step.thought
        return UNABLE_TO_COMPLETE
