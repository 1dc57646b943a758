# canonical DTOs for stored memories

from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

from ondevice_ai.common.db.models.memory.memory_records import MemoryRecordRow

class MemoryRecord(BaseModel):
    """
    A stored piece of text with its embedding. Immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    content: str
    embedding: list[float] = Field(default_factory=list, repr=False)
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    @classmethod
    def from_row(cls, row: MemoryRecordRow) -> "MemoryRecord":
        timestamp = row.created_at
        # SQLite hands back naive datetimes; everything is stored as UTC
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=row.id,
            content=row.content,
            embedding=[float(v) for v in row.embedding],
            metadata=dict(row.metadata_ or {}),
            timestamp=timestamp,
        )

class ScoredMemory(BaseModel):
    """A memory plus its cosine similarity to the query vector."""
    record: MemoryRecord
    score: float
