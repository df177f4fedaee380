"""
Service configuration.

Settings live in a YAML file (config/config.yaml by default) and are
validated into pydantic models.  Secrets never go in the YAML: the
OpenAI key is read from the environment (a local .env is honoured).
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from course_rag.chunking.schemas import ChunkingOptions

DEFAULT_CONFIG_PATH = "config/config.yaml"


class ConfigError(ValueError):
    """The configuration file is unreadable or fails validation."""


class EmbeddingConfig(BaseModel):
    use_remote: bool = True
    model: str = "text-embedding-3-small"
    dimensions: int = Field(default=1536, ge=1)
    max_input_chars: int = Field(default=2048, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    batch_size: int = Field(default=5, ge=1)
    batch_delay_seconds: float = Field(default=0.2, ge=0)
    api_key: Optional[str] = Field(default=None, exclude=True, repr=False)


class StoreConfig(BaseModel):
    path: str = "data/vector_store.json"


class RetrievalConfig(BaseModel):
    top_k: int = Field(default=5, ge=1)
    context_chunks: int = Field(default=3, ge=1)
    topic_results_per_query: int = Field(default=3, ge=1)
    key_sentence_count: int = Field(default=10, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/course_rag.log"

    @field_validator("level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


class RAGConfig(BaseModel):
    """Top-level settings for the RAG service."""

    chunking: ChunkingOptions = Field(
        default_factory=lambda: ChunkingOptions(min_chunk_size=200, max_chunk_size=800, overlap=100)
    )
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Optional[str | Path] = DEFAULT_CONFIG_PATH) -> RAGConfig:
    """
    Load and validate the YAML config.

    A missing file yields the defaults.  OPENAI_API_KEY is taken from the
    environment after loading .env.

    Raises:
        ConfigError: if the file cannot be parsed or a value is invalid.
    """
    load_dotenv()

    raw: dict = {}
    if path is not None and Path(path).exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse config file {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    try:
        config = RAGConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc

    api_key = os.getenv("OPENAI_API_KEY")
    if api_key:
        config.embedding.api_key = api_key
    return config
