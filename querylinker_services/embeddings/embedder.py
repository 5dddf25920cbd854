"""
Embedding service.

Turns texts into L2-normalised vectors with one of three explicitly selected
providers:

- hash:   deterministic pseudo-embedding, no external calls (dev only, no semantics)
- openai: one batched call to the OpenAI embeddings API
- local:  sentence-transformers model loaded in-process

Remote failures are raised as EmbeddingProviderError; there is no silent
fallback from openai to hash.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from openai import OpenAI, OpenAIError

from querylinker_core.config import Settings
from querylinker_core.errors import ConfigurationMissing, EmbeddingProviderError
from querylinker_services.embeddings.vectors import hash_to_vector

logger = logging.getLogger(__name__)

OPENAI_MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class Embedder:
    """Common interface: embed(texts) -> ndarray of shape (len(texts), dimensions)."""

    provider: str = "base"

    @property
    def dimensions(self) -> int:
        raise NotImplementedError

    @property
    def model_id(self) -> str:
        return self.provider

    @property
    def is_semantic(self) -> bool:
        return True

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        raise NotImplementedError

    def _empty(self) -> np.ndarray:
        return np.zeros((0, self.dimensions), dtype=np.float32)


class HashEmbedder(Embedder):
    provider = "hash"

    def __init__(self, dimensions: int = 256):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self._dimensions = dimensions
        logger.warning(
            "Using hash embeddings (%d dims): vectors are reproducible but carry no semantic meaning",
            dimensions,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_id(self) -> str:
        return f"hash-{self._dimensions}"

    @property
    def is_semantic(self) -> bool:
        return False

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return self._empty()
        return np.vstack([hash_to_vector(t, self._dimensions) for t in texts])


class OpenAIEmbedder(Embedder):
    provider = "openai"

    def __init__(self, api_key: str | None, model: str = "text-embedding-3-small",
                 timeout: float = 15.0, client: OpenAI | None = None):
        if client is None:
            if not api_key:
                raise ConfigurationMissing("OPENAI_API_KEY is required when EMBEDDING_PROVIDER=openai")
            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._client = client
        self._model = model

    @property
    def dimensions(self) -> int:
        return OPENAI_MODEL_DIMENSIONS.get(self._model, 1536)

    @property
    def model_id(self) -> str:
        return f"openai:{self._model}"

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return self._empty()

        # the API rejects empty strings; those rows stay zero
        valid_indices = [i for i, t in enumerate(texts) if t and t.strip()]
        out = np.zeros((len(texts), self.dimensions), dtype=np.float32)
        if not valid_indices:
            return out

        try:
            response = self._client.embeddings.create(
                model=self._model,
                input=[texts[i] for i in valid_indices],
            )
        except OpenAIError as e:
            logger.error("OpenAI embeddings call failed: %s", e)
            raise EmbeddingProviderError(f"Embedding provider request failed: {e}") from e

        data = sorted(response.data, key=lambda d: d.index)
        if len(data) != len(valid_indices):
            raise EmbeddingProviderError(
                f"Embedding provider returned {len(data)} vectors for {len(valid_indices)} texts"
            )
        vecs = np.asarray([d.embedding for d in data], dtype=np.float32)
        if vecs.shape[1] != out.shape[1]:
            out = np.zeros((len(texts), vecs.shape[1]), dtype=np.float32)
        out[valid_indices] = vecs
        return out


def build_embedder(settings: Settings) -> Embedder:
    """Construct the embedder selected by EMBEDDING_PROVIDER."""
    provider = settings.EMBEDDING_PROVIDER
    if provider == "hash":
        return HashEmbedder(settings.EMBEDDING_DIMENSIONS)
    if provider == "openai":
        return OpenAIEmbedder(
            settings.OPENAI_API_KEY,
            model=settings.EMBEDDING_MODEL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    if provider == "local":
        # torch and sentence-transformers are only pulled in when selected
        from querylinker_services.embeddings.local_embedder import SentenceTransformerEmbedder
        return SentenceTransformerEmbedder(settings.LOCAL_EMBEDDING_MODEL)
    raise ConfigurationMissing(f"Unknown EMBEDDING_PROVIDER '{provider}'")
