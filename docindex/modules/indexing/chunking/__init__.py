"""
Chunking Module

Splits extracted document text into overlapping windows for embedding.
"""

from .base import BaseChunker, ChunkConfig
from .sliding_window import SlidingWindowChunker, chunk

__all__ = ["BaseChunker", "ChunkConfig", "SlidingWindowChunker", "chunk"]
