"""
Core schemas for the course RAG service.

Persisted records (IndexedChunk, StoredDocument) are strict pydantic
models: anything loaded from disk is validated against them before it
can reach a search result.  Query-time projections (SearchResult,
IndexResult, StoreStats) are plain dataclasses.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# --- Persisted records --------------------------------------------------------

class IndexedChunk(BaseModel):
    """A chunk together with the embedding computed from its text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    index: int = Field(ge=0)
    text: str
    embedding: Optional[list[float]] = None
    embedding_model: Optional[str] = None   # Strategy that produced the vector

    @field_validator("embedding")
    @classmethod
    def _finite(cls, value: Optional[list[float]]) -> Optional[list[float]]:
        if value is not None and not all(math.isfinite(v) for v in value):
            raise ValueError("embedding contains non-finite values")
        return value


class StoredDocument(BaseModel):
    """
    One indexed document: its chunks in order plus free-form metadata.

    metadata always carries indexedAt (ISO-8601 UTC) and chunkCount once
    the document has been written by VectorStore.add_document().
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    chunks: list[IndexedChunk] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_chunk_ids(self) -> "StoredDocument":
        ids = [c.id for c in self.chunks]
        if len(ids) != len(set(ids)):
            raise ValueError(f"document {self.id!r} has duplicate chunk ids")
        return self


# --- Query-time projections ---------------------------------------------------

@dataclass(frozen=True)
class SearchResult:
    """A ranked chunk returned by a similarity search. Never persisted."""

    document_id: str
    chunk_id: str
    text: str
    similarity: float
    chunk_index: int = 0

    def to_dict(self) -> dict:
        return {
            "documentId": self.document_id,
            "chunkId": self.chunk_id,
            "text": self.text,
            "similarity": self.similarity,
        }


@dataclass(frozen=True)
class IndexResult:
    """Outcome of DocumentRetriever.index_document()."""

    success: bool
    chunk_count: int
    error: Optional[str] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"success": self.success, "chunkCount": self.chunk_count}
        if self.error:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class StoreStats:
    document_count: int
    total_chunks: int

    def to_dict(self) -> dict:
        return {"documentCount": self.document_count, "totalChunks": self.total_chunks}
