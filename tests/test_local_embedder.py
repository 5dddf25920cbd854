"""Tests for the sentence-transformers embedder, with the model class stubbed out."""

import numpy as np
import pytest

from querylinker_core.config import Settings
from querylinker_services.embeddings.embedder import build_embedder
from querylinker_services.embeddings.local_embedder import SentenceTransformerEmbedder


class FakeModel:
    def __init__(self, name, device=None):
        self.name = name
        self.device = device

    def get_sentence_embedding_dimension(self):
        return 3

    def encode(self, texts, normalize_embeddings=False, convert_to_numpy=True):
        assert normalize_embeddings
        if len(texts) == 1:
            return np.array([1.0, 0.0, 0.0], dtype=np.float64)
        return np.tile(np.array([0.0, 1.0, 0.0]), (len(texts), 1))


class ModelFactory:
    """Records every construction; can fail the first attempt with a given error."""

    def __init__(self, first_error=None):
        self.first_error = first_error
        self.calls = []

    def __call__(self, name, **kwargs):
        self.calls.append(kwargs)
        if self.first_error is not None and len(self.calls) == 1:
            raise self.first_error
        return FakeModel(name, **kwargs)


def test_model_loaded_once_on_requested_device():
    factory = ModelFactory()
    emb = SentenceTransformerEmbedder("mini", model_factory=factory, device="cpu")

    assert emb.dimensions == 3
    emb.embed(["a", "b"])
    assert factory.calls == [{"device": "cpu"}]
    assert emb.model_id == "local:mini"


def test_meta_tensor_error_retries_without_device():
    factory = ModelFactory(NotImplementedError("Cannot copy out of meta tensor; no data!"))
    emb = SentenceTransformerEmbedder("mini", model_factory=factory, device="cuda")

    assert emb.get_model().device is None
    assert factory.calls == [{"device": "cuda"}, {}]


def test_other_load_errors_propagate():
    factory = ModelFactory(RuntimeError("CUDA out of memory"))
    emb = SentenceTransformerEmbedder("mini", model_factory=factory, device="cuda")

    with pytest.raises(RuntimeError, match="out of memory"):
        emb.get_model()
    assert len(factory.calls) == 1


def test_failed_retry_points_at_model_cache():
    def factory(name, **kwargs):
        raise RuntimeError("meta tensor" if kwargs else "corrupt safetensors header")

    emb = SentenceTransformerEmbedder("mini", model_factory=factory, device="cpu")
    with pytest.raises(RuntimeError, match="hub/"):
        emb.get_model()


def test_embed_shapes_and_dtype():
    emb = SentenceTransformerEmbedder("mini", model_factory=ModelFactory(), device="cpu")

    single = emb.embed(["only one"])
    assert single.shape == (1, 3)
    assert single.dtype == np.float32
    assert emb.embed(["a", "b"]).shape == (2, 3)
    assert emb.embed([]).shape == (0, 3)


def test_build_embedder_local():
    emb = build_embedder(Settings(EMBEDDING_PROVIDER="local", LOCAL_EMBEDDING_MODEL="my/model"))
    assert isinstance(emb, SentenceTransformerEmbedder)
    assert emb.model_id == "local:my/model"
