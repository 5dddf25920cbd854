"""
Ingestion of synced solutions.

This module handles:
- Text normalisation and hashing
- Sentence splitting
- Chunking with overlap
"""

from querylinker_services.ingestion.chunker import chunk_text

__all__ = ["chunk_text"]
