"""
Chunk schema - the atomic unit that gets embedded and indexed.

A TextChunk is the raw output of the chunker. It is frozen so that a
chunk can never drift from the text its embedding was computed on.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChunkingOptions(BaseModel):
    """Size bounds for one chunking call (all values in characters)."""

    model_config = ConfigDict(frozen=True)

    min_chunk_size: int = Field(default=200, ge=1)
    max_chunk_size: int = Field(default=1000, ge=1)
    overlap: int = Field(default=100, ge=0)    # Tail carried into the next chunk
    keep_short_tail: bool = True               # Emit a final remainder below min_chunk_size

    @model_validator(mode="after")
    def _check_bounds(self) -> "ChunkingOptions":
        if self.max_chunk_size < self.min_chunk_size:
            raise ValueError(
                f"max_chunk_size ({self.max_chunk_size}) must be >= "
                f"min_chunk_size ({self.min_chunk_size})"
            )
        return self


class TextChunk(BaseModel):
    """A single embeddable text window produced from a document."""

    model_config = ConfigDict(frozen=True)

    id: str                 # "chunk_<index>", unique within the document
    index: int              # Zero-based position within the document
    text: str
