"""
In-process sentence-transformers embeddings (pip install querylinker[local]).

torch and sentence-transformers are imported on first use, so the hash and
openai providers work without them.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import TYPE_CHECKING, Callable, Sequence

import numpy as np

from querylinker_services.embeddings.embedder import Embedder

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

# substrings of the errors torch raises when weights were left on the meta device
META_TENSOR_ERRORS = ("meta tensor", "no data", "cannot copy out")


def default_device() -> str:
    import torch

    return "cuda" if torch.cuda.is_available() else "cpu"


class SentenceTransformerEmbedder(Embedder):
    provider = "local"

    def __init__(self, model_name: str, model_factory: Callable[..., "SentenceTransformer"] | None = None,
                 device: str | None = None):
        self._model_name = model_name
        self._model_factory = model_factory
        self._device = device
        self._model = None
        self._lock = threading.Lock()

    @property
    def model_id(self) -> str:
        return f"local:{self._model_name}"

    @property
    def dimensions(self) -> int:
        return int(self.get_model().get_sentence_embedding_dimension())

    def get_model(self) -> "SentenceTransformer":
        with self._lock:
            if self._model is None:
                self._model = self._load()
            return self._model

    def _factory(self) -> Callable[..., "SentenceTransformer"]:
        if self._model_factory is None:
            from sentence_transformers import SentenceTransformer

            self._model_factory = SentenceTransformer
        return self._model_factory

    def _load(self) -> "SentenceTransformer":
        factory = self._factory()
        device = self._device or default_device()
        try:
            return factory(self._model_name, device=device)
        except (NotImplementedError, RuntimeError) as e:
            if not any(marker in str(e).lower() for marker in META_TENSOR_ERRORS):
                raise
            logger.warning("Loading %s on %s left meta tensors (%s); retrying without a device",
                           self._model_name, device, e)

        try:
            return factory(self._model_name)
        except Exception as e:
            cache_dir = os.environ.get("HF_HOME", os.path.expanduser("~/.cache/huggingface"))
            raise RuntimeError(
                f"Could not load embedding model {self._model_name}; the cached copy may be corrupt. "
                f"Clear {cache_dir}/hub/ or point HF_HOME elsewhere. Error: {e}"
            ) from e

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return self._empty()
        vecs = self.get_model().encode(list(texts), normalize_embeddings=True, convert_to_numpy=True)
        if vecs.ndim == 1:
            vecs = vecs.reshape(1, -1)
        return vecs.astype(np.float32)
