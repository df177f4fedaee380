"""Abstract base class for embedding strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod


class RemoteEmbeddingError(RuntimeError):
    """The remote provider could not produce a usable vector."""


class BaseEmbedder(ABC):
    """
    All embedding strategies inherit from this class.

    Guarantees a uniform async interface so EmbeddingProvider can try
    strategies in order and treat each one identically.
    """

    name: str

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of the vectors this strategy produces."""
        ...

    @property
    @abstractmethod
    def available(self) -> bool:
        """Return True if the strategy is configured and may be called."""
        ...

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return the embedding for `text`."""
        ...
