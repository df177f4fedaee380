"""
Document Retriever
-------------------
The public face of the RAG service.  Wires the chunker, the embedding
provider and the vector store together:

    index_document : text -> chunks -> embeddings -> store
    retrieve       : query -> query embedding -> ranked chunks
    augment_prompt : base prompt + ranked chunks -> grounded prompt

None of these raise.  Failures are logged and turned into an
unsuccessful IndexResult, an empty result list, or the unmodified
prompt, so callers check results instead of catching exceptions.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

from loguru import logger

from course_rag.chunking.chunker import ParagraphChunker
from course_rag.chunking.schemas import ChunkingOptions
from course_rag.config import RAGConfig
from course_rag.embedding.embedder import EmbeddingProvider
from course_rag.embedding.vector_store import VectorStore
from course_rag.retrieval.prompts import (
    AUGMENTED_PROMPT_TEMPLATE,
    CONTEXT_HEADER,
    CONTEXT_INSTRUCTION,
    CONTEXT_SEGMENT_TEMPLATE,
)
from course_rag.schemas import IndexedChunk, IndexResult, SearchResult

# Chunk sizes used when indexing course documents
INDEX_CHUNKING = ChunkingOptions(min_chunk_size=200, max_chunk_size=800, overlap=100)


class DocumentRetriever:
    """
    Indexes documents and serves similarity retrieval over them.

    The store and embedding provider are injected; the retriever itself
    holds no state between calls.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        chunking: Optional[ChunkingOptions] = None,
        default_top_k: int = 5,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.chunker = ParagraphChunker(chunking or INDEX_CHUNKING)
        self.default_top_k = default_top_k

    @classmethod
    def from_config(cls, config: RAGConfig) -> "DocumentRetriever":
        """Build the store, provider and retriever described by `config`."""
        return cls(
            store=VectorStore(config.store.path),
            embedder=EmbeddingProvider.from_config(config.embedding),
            chunking=config.chunking,
            default_top_k=config.retrieval.top_k,
        )

    # --- Indexing -------------------------------------------------------------

    async def index_document(
        self,
        document_id: str,
        text: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> IndexResult:
        """
        Chunk, embed and store a document, replacing any earlier version.

        Returns:
            IndexResult(success=False, chunk_count=0) when the text yields
            no chunks or anything goes wrong; the store is only written
            once every chunk has a vector.
        """
        try:
            logger.info(f"[Retriever] Indexing document {document_id}...")

            chunks = self.chunker.chunk(text)
            if not chunks:
                logger.warning(f"[Retriever] No chunks created from document {document_id}")
                return IndexResult(success=False, chunk_count=0)

            logger.info(f"[Retriever] Generating embeddings for {len(chunks)} chunks...")
            embedded = await self.embedder.embed_batch_with_source([c.text for c in chunks])
            if len(embedded) != len(chunks):
                raise RuntimeError(
                    f"Mismatch: {len(chunks)} chunks vs {len(embedded)} embeddings"
                )

            indexed = [
                IndexedChunk(
                    id=chunk.id,
                    index=chunk.index,
                    text=chunk.text,
                    embedding=vector,
                    embedding_model=source,
                )
                for chunk, (vector, source) in zip(chunks, embedded)
            ]
            # Serialise + fsync in a worker thread; the store lock guards the map
            loop = asyncio.get_running_loop()

            def _write() -> None:
                self.store.add_document(document_id, indexed, metadata or {})

            await loop.run_in_executor(None, _write)

            logger.info(f"[Retriever] Successfully indexed {len(indexed)} chunks for {document_id}")
            return IndexResult(success=True, chunk_count=len(indexed))

        except Exception as exc:
            logger.error(f"[Retriever] Indexing error for {document_id}: {exc}")
            return IndexResult(success=False, chunk_count=0, error=str(exc))

    # --- Retrieval ------------------------------------------------------------

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
        document_id: Optional[str] = None,
    ) -> list[SearchResult]:
        """
        Embed the query and return the most similar stored chunks.

        Args:
            query: Free-text query.
            top_k: Maximum results (defaults to default_top_k).
            document_id: Restrict the search to one document.

        Returns:
            Results sorted by similarity descending; empty on any failure.
        """
        k = self.default_top_k if top_k is None else top_k
        try:
            query_vec = await self.embedder.embed(query)
            results = self.store.search(query_vec, top_k=k, document_id=document_id)
        except Exception as exc:
            logger.error(f"[Retriever] Retrieval error: {exc}")
            return []

        logger.info(
            f"[Retriever] Retrieved {len(results)} chunks for query {str(query)[:50]!r} "
            f"(top score: {results[0].similarity:.4f})" if results
            else f"[Retriever] No results for query {str(query)[:50]!r}"
        )
        return results

    async def augment_prompt(
        self,
        base_prompt: str,
        query: str,
        document_id: Optional[str],
        context_chunks: int = 3,
    ) -> str:
        """
        Append retrieved context to `base_prompt`.

        When nothing is retrieved, or the context cannot be rendered, the
        base prompt is returned unchanged.
        """
        retrieved = await self.retrieve(query, context_chunks, document_id)
        if not retrieved:
            return base_prompt
        try:
            return format_augmented_prompt(base_prompt, retrieved)
        except Exception as exc:
            logger.error(f"[Retriever] Prompt augmentation error: {exc}")
            return base_prompt


def format_augmented_prompt(base_prompt: str, results: list[SearchResult]) -> str:
    """Render the context block, one labelled segment per result in rank order."""
    context = "\n\n".join(
        CONTEXT_SEGMENT_TEMPLATE.format(index=i, text=r.text)
        for i, r in enumerate(results, start=1)
    )
    return AUGMENTED_PROMPT_TEMPLATE.format(
        base_prompt=base_prompt,
        header=CONTEXT_HEADER,
        context=context,
        instruction=CONTEXT_INSTRUCTION,
    )
