# output types for the ReAct agent: parsed LLM turns, trace steps and run results

import json
from enum import Enum
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field

class AgentAction(BaseModel):
    """A single tool call requested by the LLM."""
    tool: str = Field(description="Exact name of the tool to invoke.")
    args: Any = Field(default=None, description="Tool argument: a JSON object or a plain value.")

    def argument_string(self) -> str:
        """Argument as handed to ToolDescriptor.invoke."""
        if self.args is None:
            return ""
        if isinstance(self.args, str):
            return self.args
        return json.dumps(self.args)

class AgentStep(BaseModel):
    """One iteration of the trace. Steps are append-only within a run."""
    iteration: int = Field(ge=1)
    thought: str = ""
    action: Optional[AgentAction] = None
    observation: Optional[str] = None

class StopReason(str, Enum):
    FINAL_ANSWER = "final_answer"
    MAX_ITERATIONS = "max_iterations"
    TIMEOUT = "timeout"
    PARSE_FAILURE = "parse_failure"
    COMPLETION_ERROR = "completion_error"
    CANCELLED = "cancelled"

class AgentPhase(str, Enum):
    REASONING = "reasoning"
    ACTING = "acting"
    STEP_COMPLETED = "step_completed"
    DONE = "done"

class AgentStatus(BaseModel):
    """Live progress of a run, pushed to the optional status callback of AgentExecutor.run."""
    phase: AgentPhase
    iteration: int = 0
    current_tool: Optional[str] = None
    step: Optional[AgentStep] = None
    stop_reason: Optional[StopReason] = None

class AgentResult(BaseModel):
    success: bool
    final_answer: str
    steps: list[AgentStep] = Field(default_factory=list)
    stop_reason: StopReason
    execution_time_ms: int = 0

    @computed_field
    @property
    def total_steps(self) -> int:
        return len(self.steps)

class AgentConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    max_iterations: int = Field(default=5, ge=1)
    timeout_ms: int = Field(default=45000, ge=0)
    retry_attempts: int = Field(default=2, ge=0, description="Extra generations per iteration after a parse failure.")

# =====================================================================
# Parse outcomes (tagged result)
# =====================================================================

class ParsedResponse(BaseModel):
    """Structured content of one LLM turn."""
    thought: str = ""
    action: Optional[AgentAction] = None
    final_answer: Optional[str] = None

class Parsed(BaseModel):
    kind: Literal["parsed"] = "parsed"
    response: ParsedResponse

class NeedsRetry(BaseModel):
    kind: Literal["needs_retry"] = "needs_retry"
    reason: str
    raw: str

class Fallback(BaseModel):
    kind: Literal["fallback"] = "fallback"
    reason: str
    raw: str

ParseOutcome = Union[Parsed, NeedsRetry, Fallback]
