# memory request bodies

from typing import Any, Optional
from pydantic import BaseModel, Field

class AddMemoryRequest(BaseModel):
    """
    Request body for storing a single memory.
    """
    text: str
    metadata: Optional[dict[str, Any]] = None

class AddMemoriesRequest(BaseModel):
    """
    Request body for storing several memories with one embedding call.
    Metadata, if given, is attached to every memory in the batch.
    """
    texts: list[str] = Field(min_length=1)
    metadata: Optional[dict[str, Any]] = None

class QueryMemoryRequest(BaseModel):
    query: str
    k: int = 5
