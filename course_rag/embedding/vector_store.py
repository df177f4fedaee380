"""
Persistent Vector Store
------------------------
A keyed collection of documents -> embedded chunks, held in memory and
mirrored to a single JSON file.

The store object owns its map and its file; build one at startup and
hand it to every caller.  Every mutation takes the store lock, updates
the map, and rewrites the file atomically (temp file + rename), so a
crash mid-write leaves the previous file intact.

Persistence:
  - Store file       -> data/vector_store.json
  - Unparsable file  -> renamed to <file>.corrupt, store starts empty
  - Invalid records  -> skipped, copied to <file>.quarantine.json

Write failures are logged and swallowed: the in-memory map stays
authoritative until the next successful write.
"""
from __future__ import annotations

import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

import orjson
from loguru import logger

from course_rag.embedding.similarity import cosine_similarity
from course_rag.schemas import IndexedChunk, SearchResult, StoreStats, StoredDocument
from course_rag.utils.helpers import load_json, save_json_atomic

STORE_PATH = Path("data/vector_store.json")


class VectorStore:
    """
    Document-keyed chunk store with brute-force cosine search.

    Usage:
        store = VectorStore("data/vector_store.json")
        store.add_document("syllabus-42", chunks, {"source": "syllabus.pdf"})
        hits = store.search(query_vec, top_k=5, document_id="syllabus-42")
    """

    def __init__(self, path: str | Path = STORE_PATH, autoload: bool = True) -> None:
        self.path = Path(path)
        self._documents: dict[str, StoredDocument] = {}
        self._lock = threading.RLock()
        self.last_persist_error: Optional[str] = None
        if autoload:
            self.load()

    # --- Load -----------------------------------------------------------------

    def load(self) -> None:
        """(Re)load the store from disk, replacing the in-memory map."""
        with self._lock:
            self._documents = {}

            if not self.path.exists():
                logger.info(f"[VectorStore] No store file at {self.path}, starting empty")
                return

            try:
                raw = load_json(self.path)
            except (OSError, orjson.JSONDecodeError) as exc:
                logger.error(f"[VectorStore] Cannot parse {self.path}: {exc}")
                self._set_aside_corrupt()
                return

            if not isinstance(raw, dict):
                logger.error(f"[VectorStore] {self.path} does not hold a document mapping")
                self._set_aside_corrupt()
                return

            quarantined: dict[str, Any] = {}
            for doc_id, record in raw.items():
                try:
                    doc = StoredDocument.model_validate(record)
                    if doc.id != doc_id:
                        raise ValueError(f"record id {doc.id!r} does not match key")
                except ValueError as exc:
                    logger.warning(f"[VectorStore] Quarantining malformed record {doc_id!r}: {exc}")
                    quarantined[doc_id] = record
                    continue
                self._documents[doc_id] = doc

            if quarantined:
                self._write_quarantine(quarantined)

            logger.info(
                f"[VectorStore] Loaded {len(self._documents)} documents, "
                f"{self._chunk_total()} chunks from {self.path}"
            )

    def _set_aside_corrupt(self) -> None:
        corrupt_path = self.path.with_name(self.path.name + ".corrupt")
        try:
            os.replace(self.path, corrupt_path)
            logger.warning(f"[VectorStore] Moved unreadable store to {corrupt_path}, starting empty")
        except OSError as exc:
            logger.error(f"[VectorStore] Could not move unreadable store aside: {exc}")

    def _write_quarantine(self, records: dict[str, Any]) -> None:
        quarantine_path = self.path.with_name(self.path.stem + ".quarantine.json")
        try:
            save_json_atomic(records, quarantine_path)
            logger.warning(f"[VectorStore] {len(records)} record(s) quarantined -> {quarantine_path}")
        except (OSError, TypeError) as exc:
            logger.error(f"[VectorStore] Could not write quarantine file: {exc}")

    # --- Persist --------------------------------------------------------------

    def _persist(self) -> bool:
        data = {doc_id: doc.model_dump(mode="json") for doc_id, doc in self._documents.items()}
        try:
            save_json_atomic(data, self.path)
        except (OSError, TypeError) as exc:
            self.last_persist_error = str(exc)
            logger.error(f"[VectorStore] Error saving store to {self.path}: {exc}")
            return False
        self.last_persist_error = None
        return True

    # --- Mutations ------------------------------------------------------------

    def add_document(
        self,
        document_id: str,
        chunks: Sequence[IndexedChunk | dict],
        metadata: Optional[dict[str, Any]] = None,
    ) -> StoredDocument:
        """
        Store a document, replacing any previous entry under the same id.

        metadata is stamped with indexedAt and chunkCount.  The store file
        is rewritten before this returns.

        Raises:
            ValueError: on an empty id or chunks that fail validation.
        """
        if not isinstance(document_id, str) or not document_id:
            raise ValueError("Invalid document data: document_id must be a non-empty string")

        validated = [
            c if isinstance(c, IndexedChunk) else IndexedChunk.model_validate(c) for c in chunks
        ]
        doc = StoredDocument(
            id=document_id,
            chunks=validated,
            metadata={
                **(metadata or {}),
                "indexedAt": datetime.now(timezone.utc).isoformat(),
                "chunkCount": len(validated),
            },
        )

        with self._lock:
            self._documents[document_id] = doc
            self._persist()

        logger.info(f"[VectorStore] Indexed document {document_id} with {len(validated)} chunks")
        return doc

    def delete_document(self, document_id: str) -> bool:
        """Remove a document. Returns False if it was not stored."""
        with self._lock:
            if document_id not in self._documents:
                return False
            del self._documents[document_id]
            self._persist()

        logger.info(f"[VectorStore] Deleted document {document_id}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._documents = {}
            self._persist()
        logger.info("[VectorStore] Cleared vector store")

    # --- Queries --------------------------------------------------------------

    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int = 5,
        document_id: Optional[str] = None,
    ) -> list[SearchResult]:
        """
        Rank stored chunks by cosine similarity to `query_embedding`.

        Args:
            query_embedding: Query vector.
            top_k: Maximum number of results.
            document_id: Restrict the scan to one document.

        Returns:
            Up to top_k results, highest similarity first.  Equal scores
            are ordered by document id, then chunk index.
        """
        if top_k <= 0:
            return []

        with self._lock:
            if document_id is not None:
                doc = self._documents.get(document_id)
                docs: Iterable[StoredDocument] = [doc] if doc is not None else []
            else:
                docs = list(self._documents.values())

        results: list[SearchResult] = []
        for doc in docs:
            for chunk in doc.chunks:
                if not chunk.embedding:
                    continue
                results.append(
                    SearchResult(
                        document_id=doc.id,
                        chunk_id=chunk.id,
                        text=chunk.text,
                        similarity=cosine_similarity(query_embedding, chunk.embedding),
                        chunk_index=chunk.index,
                    )
                )

        results.sort(key=lambda r: (-r.similarity, r.document_id, r.chunk_index))
        return results[:top_k]

    def get_document(self, document_id: str) -> Optional[StoredDocument]:
        """Return a copy of the stored document, or None."""
        with self._lock:
            doc = self._documents.get(document_id)
            return doc.model_copy(deep=True) if doc is not None else None

    def list_documents(self) -> list[str]:
        with self._lock:
            return list(self._documents)

    def get_stats(self) -> StoreStats:
        with self._lock:
            return StoreStats(document_count=len(self._documents), total_chunks=self._chunk_total())

    def _chunk_total(self) -> int:
        return sum(len(doc.chunks) for doc in self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents
