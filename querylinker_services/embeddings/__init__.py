"""
Embeddings: provider-selected text vectors used for semantic ranking.
"""

from querylinker_services.embeddings.embedder import Embedder, HashEmbedder, OpenAIEmbedder, build_embedder

__all__ = ["Embedder", "HashEmbedder", "OpenAIEmbedder", "build_embedder"]
