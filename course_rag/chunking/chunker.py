"""
Course RAG - Paragraph Chunker
--------------------------------
Splits syllabus / course-note text into ordered, size-bounded chunks.

Strategy:
  - Paragraphs (blank-line separated) are the natural unit.  They are
    accumulated greedily until the next one would push the buffer past
    max_chunk_size, at which point the buffer is emitted, provided it
    has already reached min_chunk_size.
  - Each new buffer starts with the last `overlap` characters of the
    chunk just emitted, so a passage cut at a boundary is still readable
    from either side.
  - A buffer that ends up larger than max_chunk_size (one huge paragraph)
    is re-split on sentence boundaries and accumulated the same way.
    A single sentence longer than max_chunk_size is never cut.  A run of
    sentences is flushed early (below min_chunk_size) rather than joined
    with a sentence that would then overflow max_chunk_size.

All sizes are measured in characters.
"""
from __future__ import annotations

import re
from typing import Optional

from loguru import logger

from course_rag.chunking.schemas import ChunkingOptions, TextChunk
from course_rag.utils.helpers import normalize_newlines


# ── Constants ─────────────────────────────────────────────────────────────────

_PARAGRAPH_BREAK = re.compile(r"\n\n+")

# A run of non-terminators followed by terminators, or by end of text
_SENTENCE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


def split_paragraphs(text: str) -> list[str]:
    """Normalise line endings and split on blank lines, dropping empty paragraphs."""
    cleaned = normalize_newlines(text)
    return [p.strip() for p in _PARAGRAPH_BREAK.split(cleaned) if p.strip()]


def split_sentences(text: str) -> list[str]:
    """Split text on '.', '!' and '?' boundaries. Unterminated trailing text is kept."""
    sentences = [s.strip() for s in _SENTENCE.findall(text)]
    sentences = [s for s in sentences if s]
    return sentences or ([text.strip()] if text.strip() else [])


# ── Main Chunker ──────────────────────────────────────────────────────────────

class ParagraphChunker:
    """
    Greedy paragraph-then-sentence chunker.

    Usage:
        chunker = ParagraphChunker(ChunkingOptions(max_chunk_size=800))
        chunks = chunker.chunk(document_text)
    """

    def __init__(self, options: Optional[ChunkingOptions] = None) -> None:
        self.options = options or ChunkingOptions()

    def chunk(self, text: str) -> list[TextChunk]:
        """
        Chunk a document's text.

        Args:
            text: Raw document text.  Anything that is not a non-blank
                  string yields an empty list.

        Returns:
            Chunks with ids chunk_0..chunk_N in document order.
        """
        if not isinstance(text, str) or not text.strip():
            return []

        opts = self.options
        chunks: list[TextChunk] = []
        buffer = ""

        for paragraph in split_paragraphs(text):
            if len(buffer) + len(paragraph) > opts.max_chunk_size and len(buffer) >= opts.min_chunk_size:
                self._emit(chunks, buffer)
                carry = self._overlap_tail(buffer)
                buffer = f"{carry} {paragraph}" if carry else paragraph
            else:
                buffer = f"{buffer}\n\n{paragraph}" if buffer else paragraph

            if len(buffer) > opts.max_chunk_size:
                buffer = self._split_oversized(buffer, chunks)

        if buffer:
            if len(buffer) >= opts.min_chunk_size:
                self._emit(chunks, buffer)
            elif opts.keep_short_tail and chunks:
                self._emit(chunks, buffer)
            else:
                logger.debug(f"[Chunker] Dropped {len(buffer)}-char remainder below min_chunk_size")

        if chunks:
            avg = sum(len(c.text) for c in chunks) // len(chunks)
            logger.debug(f"[Chunker] {len(text)} chars -> {len(chunks)} chunk(s) (avg {avg} chars)")
        else:
            logger.debug(f"[Chunker] {len(text)} chars -> no chunks (below min_chunk_size)")
        return chunks

    # --- Internals ------------------------------------------------------------

    def _split_oversized(self, buffer: str, chunks: list[TextChunk]) -> str:
        """
        Re-accumulate an oversized buffer sentence by sentence; return the unflushed rest.

        When the next sentence fits max_chunk_size on its own but not joined
        to the current run, the run is emitted even if it is still below
        min_chunk_size.  A below-min run followed by an oversized sentence
        stays attached to it instead.
        """
        opts = self.options
        current = ""
        for sentence in split_sentences(buffer):
            joined_len = len(current) + 1 + len(sentence) if current else len(sentence)
            fits_alone = len(sentence) <= opts.max_chunk_size
            if current and joined_len > opts.max_chunk_size and (
                len(current) >= opts.min_chunk_size or fits_alone
            ):
                if len(current) < opts.min_chunk_size:
                    logger.debug(
                        f"[Chunker] Emitting {len(current)}-char run below min_chunk_size "
                        f"ahead of a {len(sentence)}-char sentence"
                    )
                self._emit(chunks, current)
                current = sentence
            else:
                current = f"{current} {sentence}" if current else sentence
        return current

    def _overlap_tail(self, emitted: str) -> str:
        if self.options.overlap <= 0:
            return ""
        return emitted[-self.options.overlap:].strip()

    @staticmethod
    def _emit(chunks: list[TextChunk], buffer: str) -> None:
        text = buffer.strip()
        if not text:
            return
        index = len(chunks)
        chunks.append(TextChunk(id=f"chunk_{index}", index=index, text=text))


def chunk_text(text: str, options: Optional[ChunkingOptions] = None) -> list[TextChunk]:
    """Functional shortcut for ParagraphChunker(options).chunk(text)."""
    return ParagraphChunker(options).chunk(text)
