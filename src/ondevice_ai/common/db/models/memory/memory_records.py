# ORM model for stored memories and their embeddings
from ondevice_ai.common.db.models.base import MemoryDB_Base
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Text, DateTime, Index, JSON
from pgvector.sqlalchemy import Vector
from datetime import datetime, timezone
from typing import Any, Optional

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# JSON float array everywhere; native pgvector column on PostgreSQL.
# NOTE: Vector() without a fixed dim, the store enforces dimensionality itself (first insert wins)
EmbeddingColumnType = JSON().with_variant(Vector(), "postgresql")

class MemoryRecordRow(MemoryDB_Base):
    """
    A single stored memory: text, its embedding, optional metadata, creation time.
    Rows are never updated in place; re-embedding means delete + insert.

    Retrieval possibilities:
    - Similarity search: rank all embeddings against a query vector (cosine, computed in-process)
    - Text lookup: case-insensitive substring match on content
    - Temporal: newest-first listing by id / timestamp
    """
    __tablename__ = "memories"

    # Primary key, monotonically increasing so a higher id is always the more recent insert
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Original text that was embedded
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Embedding vector, fixed length per store
    embedding: Mapped[list[float]] = mapped_column(EmbeddingColumnType, nullable=False)

    # NOTE: `metadata` is reserved on declarative classes, so the attribute is suffixed
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        # For timestamp-based queries
        Index('idx_memories_created', 'created_at'),
        # never reuse ids of deleted rows
        {"sqlite_autoincrement": True},
    )
