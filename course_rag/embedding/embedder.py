"""
Embedding Provider
-------------------
Two strategies behind one resolver:

  RemoteEmbedder   -- OpenAI text-embedding-3-small via the async client,
                      with tenacity retries on transient errors
  FallbackEmbedder -- deterministic vocabulary projection (see fallback.py)

EmbeddingProvider tries the remote strategy when a credential is
configured and drops to the fallback on any failure.  embed() therefore
never raises; callers only ever see a vector.

Batching follows the provider's rate limits: texts are embedded in
small batches (default 5) whose requests run concurrently, with a short
pause between batches.
"""
from __future__ import annotations

import asyncio
import math
import os
import time
from typing import TYPE_CHECKING, Optional, Sequence

from loguru import logger
from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from course_rag.embedding.base import BaseEmbedder, RemoteEmbeddingError
from course_rag.embedding.fallback import FallbackEmbedder
from course_rag.embedding.similarity import cosine_similarity

if TYPE_CHECKING:
    from course_rag.config import EmbeddingConfig


MODEL = "text-embedding-3-small"
DIMENSIONS = 1536           # text-embedding-3-small native dimensions
MAX_INPUT_CHARS = 2048      # Inputs are truncated before the API call
BATCH_SIZE = 5              # Concurrent requests per batch
BATCH_DELAY_SECONDS = 0.2   # Pause between batches

_TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)


class RemoteEmbedder(BaseEmbedder):
    """
    OpenAI embeddings for a single text per request.

    Raises RemoteEmbeddingError for every failure mode (missing key,
    network, auth, empty or malformed payload) so the resolver has one
    thing to catch.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = MODEL,
        dimensions: int = DIMENSIONS,
        max_input_chars: int = MAX_INPUT_CHARS,
        timeout_seconds: float = 30.0,
        max_attempts: int = 3,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY")
        self.model = model
        self.name = model
        self._dimensions = dimensions
        self.max_input_chars = max_input_chars
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self._client = client
        self.total_tokens_used: int = 0
        self.total_api_calls: int = 0

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            # Retries are handled by tenacity below
            self._client = AsyncOpenAI(
                api_key=self.api_key, timeout=self.timeout_seconds, max_retries=0
            )
        return self._client

    async def embed(self, text: str) -> list[float]:
        if not self.available:
            raise RemoteEmbeddingError("No remote embedding credential configured")

        # Empty input is rejected by the API
        truncated = text[: self.max_input_chars] if text.strip() else " "
        client = self._get_client()
        start = time.perf_counter()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=30),
                retry=retry_if_exception_type(_TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await client.embeddings.create(
                        model=self.model, input=truncated, dimensions=self._dimensions
                    )
        except Exception as exc:
            raise RemoteEmbeddingError(f"{type(exc).__name__}: {exc}") from exc

        vector = self._parse(response)
        elapsed = time.perf_counter() - start
        self.total_api_calls += 1
        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "total_tokens", 0) or 0
        self.total_tokens_used += tokens
        logger.debug(f"[Embedder] API call: {len(truncated)} chars, {tokens} tokens, {elapsed:.2f}s")
        return vector

    def _parse(self, response) -> list[float]:
        """Pull the vector out of an embeddings response, rejecting anything malformed."""
        data = getattr(response, "data", None)
        if not data:
            raise RemoteEmbeddingError("Embedding response contained no data")

        values = getattr(data[0], "embedding", None)
        if not isinstance(values, (list, tuple)) or not values:
            raise RemoteEmbeddingError("Embedding response missing vector values")

        try:
            vector = [float(v) for v in values]
        except (TypeError, ValueError) as exc:
            raise RemoteEmbeddingError(f"Non-numeric embedding values: {exc}") from exc
        if not all(math.isfinite(v) for v in vector):
            raise RemoteEmbeddingError("Embedding response contained non-finite values")
        if len(vector) != self._dimensions:
            raise RemoteEmbeddingError(
                f"Expected {self._dimensions}-d embedding, got {len(vector)}-d"
            )
        return vector


class EmbeddingProvider:
    """
    Resolves each embedding request to the remote strategy or the fallback.

    Usage:
        provider = EmbeddingProvider(remote=RemoteEmbedder())
        vector = await provider.embed("machine learning course")
        vectors = await provider.embed_batch(chunk_texts)
    """

    def __init__(
        self,
        remote: Optional[BaseEmbedder] = None,
        fallback: Optional[BaseEmbedder] = None,
        batch_size: int = BATCH_SIZE,
        batch_delay_seconds: float = BATCH_DELAY_SECONDS,
    ) -> None:
        self.remote = remote
        self.fallback = fallback or FallbackEmbedder()
        self.batch_size = max(1, batch_size)
        self.batch_delay_seconds = max(0.0, batch_delay_seconds)
        self.remote_calls: int = 0
        self.remote_failures: int = 0
        self.fallback_calls: int = 0

    @classmethod
    def from_config(cls, config: "EmbeddingConfig") -> "EmbeddingProvider":
        remote = None
        if config.use_remote:
            remote = RemoteEmbedder(
                api_key=config.api_key,
                model=config.model,
                dimensions=config.dimensions,
                max_input_chars=config.max_input_chars,
                timeout_seconds=config.timeout_seconds,
                max_attempts=config.max_attempts,
            )
            if not remote.available:
                logger.warning("[Embedder] OPENAI_API_KEY not set, using offline fallback embeddings")
        return cls(
            remote=remote,
            batch_size=config.batch_size,
            batch_delay_seconds=config.batch_delay_seconds,
        )

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None and self.remote.available

    # --- Single text ----------------------------------------------------------

    async def embed_with_source(self, text: str) -> tuple[list[float], str]:
        """Embed `text` and report which strategy produced the vector."""
        if not isinstance(text, str):
            text = "" if text is None else str(text)

        if self.remote_enabled:
            try:
                vector = await self.remote.embed(text)
                self.remote_calls += 1
                return vector, self.remote.name
            except Exception as exc:
                self.remote_failures += 1
                logger.warning(f"[Embedder] Remote embedding failed, using fallback: {exc}")

        vector = await self.fallback.embed(text)
        self.fallback_calls += 1
        return vector, self.fallback.name

    async def embed(self, text: str) -> list[float]:
        vector, _ = await self.embed_with_source(text)
        return vector

    # --- Batches --------------------------------------------------------------

    async def embed_batch_with_source(self, texts: Sequence[str]) -> list[tuple[list[float], str]]:
        """
        Embed many texts, preserving order.

        Requests inside one batch run concurrently; batches run one after
        another with batch_delay_seconds between them.
        """
        results: list[tuple[list[float], str]] = []
        total = len(texts)

        for i in range(0, total, self.batch_size):
            batch = list(texts[i: i + self.batch_size])
            results.extend(await asyncio.gather(*(self.embed_with_source(t) for t in batch)))

            logger.debug(
                f"[Embedder] Batch {i // self.batch_size + 1} | "
                f"{len(batch)} texts | {len(results)}/{total} done"
            )
            if i + self.batch_size < total and self.batch_delay_seconds:
                await asyncio.sleep(self.batch_delay_seconds)

        return results

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [vector for vector, _ in await self.embed_batch_with_source(texts)]

    # --- Similarity -----------------------------------------------------------

    @staticmethod
    def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)

    def usage_summary(self) -> dict:
        summary = {
            "remote_enabled": self.remote_enabled,
            "remote_calls": self.remote_calls,
            "remote_failures": self.remote_failures,
            "fallback_calls": self.fallback_calls,
        }
        if isinstance(self.remote, RemoteEmbedder):
            summary["model"] = self.remote.model
            summary["total_tokens_used"] = self.remote.total_tokens_used
        return summary
