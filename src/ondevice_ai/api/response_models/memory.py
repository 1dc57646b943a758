# memory response models

from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field

from ondevice_ai.memory.memory_types import MemoryRecord

class MemoryItem(BaseModel):
    """A stored memory without its embedding vector."""
    id: int
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    @classmethod
    def from_record(cls, record: MemoryRecord) -> "MemoryItem":
        return cls(id=record.id, content=record.content, metadata=record.metadata, timestamp=record.timestamp)

class MemoryMatch(MemoryItem):
    score: float

class AddMemoryResponse(BaseModel):
    id: int

class AddMemoriesResponse(BaseModel):
    ids: list[int]

class QueryMemoryResponse(BaseModel):
    query: str
    results: list[str] = Field(description="Matching contents, best first.")
    matches: list[MemoryMatch] = Field(default_factory=list)

class MemoryListResponse(BaseModel):
    items: list[MemoryItem]
    limit: int
    offset: int
    total: int

class MemoryCountResponse(BaseModel):
    count: int

class DeleteMemoryResponse(BaseModel):
    id: int
    deleted: bool
