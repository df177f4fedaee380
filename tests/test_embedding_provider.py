"""Unit tests for the remote embedder and the remote-then-fallback resolver."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from course_rag.config import EmbeddingConfig
from course_rag.embedding.base import BaseEmbedder, RemoteEmbeddingError
from course_rag.embedding.embedder import EmbeddingProvider, RemoteEmbedder
from course_rag.embedding.fallback import FALLBACK_DIMENSIONS, FALLBACK_MODEL, term_frequency_vector


def _fake_client(vector=None, side_effect=None, data=None):
    """AsyncOpenAI stand-in whose embeddings.create returns one vector."""
    client = MagicMock()
    if data is None:
        data = [SimpleNamespace(embedding=vector)]
    response = SimpleNamespace(data=data, usage=SimpleNamespace(total_tokens=7))
    client.embeddings.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class RecordingEmbedder(BaseEmbedder):
    """Embeds text as [len(text)] and tracks how many calls overlap."""

    name = "recording"

    def __init__(self, pause: float = 0.0) -> None:
        self.pause = pause
        self.in_flight = 0
        self.max_in_flight = 0
        self.seen: list[str] = []

    @property
    def dimensions(self) -> int:
        return 1

    @property
    def available(self) -> bool:
        return True

    async def embed(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.seen.append(text)
        if self.pause:
            await asyncio.sleep(self.pause)
        self.in_flight -= 1
        return [float(len(text))]


# --- Fallback path ------------------------------------------------------------

@pytest.mark.asyncio
async def test_no_credentials_uses_fallback(offline_provider):
    first = await offline_provider.embed("machine learning course")
    second = await offline_provider.embed("machine learning course")

    assert first == second
    assert len(first) == FALLBACK_DIMENSIONS
    assert offline_provider.usage_summary()["fallback_calls"] == 2
    assert offline_provider.usage_summary()["remote_enabled"] is False


@pytest.mark.asyncio
async def test_remote_without_key_is_skipped():
    remote = RemoteEmbedder(api_key=None)
    provider = EmbeddingProvider(remote=remote, batch_delay_seconds=0)

    assert remote.available is False
    vector, source = await provider.embed_with_source("course outline")

    assert source == FALLBACK_MODEL
    assert provider.remote_failures == 0


@pytest.mark.asyncio
async def test_remote_embedder_raises_without_key():
    with pytest.raises(RemoteEmbeddingError):
        await RemoteEmbedder(api_key=None).embed("anything")


@pytest.mark.asyncio
async def test_non_string_input_never_fails(offline_provider):
    assert len(await offline_provider.embed(None)) == FALLBACK_DIMENSIONS
    assert len(await offline_provider.embed(1234)) == FALLBACK_DIMENSIONS


# --- Remote path --------------------------------------------------------------

@pytest.mark.asyncio
async def test_remote_vector_is_returned():
    client = _fake_client(vector=[0.1, 0.2, 0.3])
    provider = EmbeddingProvider(remote=RemoteEmbedder(client=client, dimensions=3), batch_delay_seconds=0)

    vector, source = await provider.embed_with_source("gradient descent")

    assert vector == [0.1, 0.2, 0.3]
    assert source == "text-embedding-3-small"
    assert provider.remote_calls == 1
    assert provider.usage_summary()["total_tokens_used"] == 7


@pytest.mark.asyncio
async def test_remote_input_is_truncated():
    client = _fake_client(vector=[1.0])
    remote = RemoteEmbedder(client=client, max_input_chars=50, dimensions=1)

    await remote.embed("x" * 500)

    kwargs = client.embeddings.create.call_args.kwargs
    assert kwargs["input"] == "x" * 50
    assert kwargs["model"] == "text-embedding-3-small"
    assert kwargs["dimensions"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "client",
    [
        _fake_client(side_effect=RuntimeError("connection reset")),
        _fake_client(data=[]),
        _fake_client(vector=[]),
        _fake_client(vector=["not", "numbers"]),
        _fake_client(vector=[0.5, float("nan")]),
        _fake_client(vector=[0.1, 0.2]),
    ],
    ids=["error", "no-data", "empty-vector", "non-numeric", "non-finite", "wrong-dimensions"],
)
async def test_remote_failures_fall_back(client):
    provider = EmbeddingProvider(
        remote=RemoteEmbedder(client=client, max_attempts=1), batch_delay_seconds=0
    )

    vector, source = await provider.embed_with_source("learning outcomes")

    assert source == FALLBACK_MODEL
    assert vector == term_frequency_vector("learning outcomes")
    assert provider.remote_failures == 1
    assert provider.fallback_calls == 1


@pytest.mark.asyncio
async def test_malformed_response_raises_remote_error():
    remote = RemoteEmbedder(client=_fake_client(data=[]), max_attempts=1)
    with pytest.raises(RemoteEmbeddingError, match="no data"):
        await remote.embed("text")


@pytest.mark.asyncio
async def test_configured_dimensions_are_requested_and_enforced():
    client = _fake_client(vector=[0.1] * 256)
    remote = RemoteEmbedder(client=client, dimensions=256)

    assert len(await remote.embed("syllabus")) == 256
    assert client.embeddings.create.call_args.kwargs["dimensions"] == 256

    with pytest.raises(RemoteEmbeddingError, match="Expected 512-d embedding, got 256-d"):
        await RemoteEmbedder(client=client, dimensions=512, max_attempts=1).embed("syllabus")


# --- Batching -----------------------------------------------------------------

@pytest.mark.asyncio
async def test_batch_preserves_order():
    recorder = RecordingEmbedder(pause=0.001)
    provider = EmbeddingProvider(remote=recorder, batch_size=5, batch_delay_seconds=0)
    texts = ["a" * n for n in range(1, 13)]

    vectors = await provider.embed_batch(texts)

    assert vectors == [[float(n)] for n in range(1, 13)]


@pytest.mark.asyncio
async def test_batch_concurrency_is_bounded_by_batch_size():
    recorder = RecordingEmbedder(pause=0.01)
    provider = EmbeddingProvider(remote=recorder, batch_size=3, batch_delay_seconds=0)

    await provider.embed_batch([f"text {i}" for i in range(10)])

    assert recorder.max_in_flight == 3


@pytest.mark.asyncio
async def test_pause_between_batches(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("course_rag.embedding.embedder.asyncio.sleep", sleep)
    provider = EmbeddingProvider(remote=RecordingEmbedder(), batch_size=5, batch_delay_seconds=0.2)

    await provider.embed_batch([f"text {i}" for i in range(12)])

    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.2)


@pytest.mark.asyncio
async def test_empty_batch(offline_provider):
    assert await offline_provider.embed_batch([]) == []


# --- Construction -------------------------------------------------------------

def test_from_config_remote_disabled():
    provider = EmbeddingProvider.from_config(EmbeddingConfig(use_remote=False, batch_size=2))

    assert provider.remote is None
    assert provider.batch_size == 2


def test_from_config_remote_enabled_with_key():
    provider = EmbeddingProvider.from_config(EmbeddingConfig(api_key="sk-test", model="custom-model"))

    assert provider.remote_enabled
    assert provider.remote.name == "custom-model"


def test_cosine_similarity_exposed():
    assert EmbeddingProvider.cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
