"""Topic-level compositions over DocumentRetriever.retrieve()."""
from __future__ import annotations

from typing import Sequence

from loguru import logger

from course_rag.chunking.key_sentences import extract_key_sentences
from course_rag.retrieval.prompts import TOPIC_QUERIES
from course_rag.retrieval.retriever import DocumentRetriever


async def extract_topics(
    retriever: DocumentRetriever,
    document_id: str,
    count: int = 10,
    results_per_query: int = 3,
) -> list[str]:
    """
    Pull the chunks that talk about course structure out of a document
    and condense them into up to `count` key sentences.
    """
    retrieved = []
    for query in TOPIC_QUERIES:
        retrieved.extend(await retriever.retrieve(query, results_per_query, document_id))

    combined = " ".join(r.text for r in retrieved)
    topics = extract_key_sentences(combined, count)
    logger.info(
        f"[Topics] {document_id}: {len(retrieved)} chunks from {len(TOPIC_QUERIES)} queries "
        f"-> {len(topics)} key sentences"
    )
    return topics


async def get_context_for_topics(
    retriever: DocumentRetriever,
    document_id: str,
    topics: Sequence[str],
    per_topic: int = 2,
) -> list[dict]:
    """Retrieve `per_topic` supporting passages for each topic, in topic order."""
    topics_with_context: list[dict] = []
    for topic in topics:
        results = await retriever.retrieve(topic, per_topic, document_id)
        topics_with_context.append({"topic": topic, "contexts": [r.text for r in results]})
    return topics_with_context
