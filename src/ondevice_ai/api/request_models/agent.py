# agent request bodies

from typing import Optional
from pydantic import BaseModel, Field

class AgentRunRequest(BaseModel):
    """
    Request body for a single agent run.
    Optional overrides apply to this run only.
    """
    query: str = Field(min_length=1)
    max_iterations: Optional[int] = Field(default=None, ge=1)
    timeout_ms: Optional[int] = Field(default=None, ge=0)
