"""
Document indexing and semantic search pipeline
"""

from .config import IndexerConfig
from .indexer import DocumentIndexer
from .models import (
    DocumentElement,
    DocumentMetadata,
    EmbeddedChunk,
    EmbeddingResult,
    ParseResult,
    SearchFilter,
    SearchOptions,
    SearchResult,
    StoredEmbedding,
    TextChunk,
)

__all__ = [
    "DocumentElement",
    "DocumentIndexer",
    "DocumentMetadata",
    "EmbeddedChunk",
    "EmbeddingResult",
    "IndexerConfig",
    "ParseResult",
    "SearchFilter",
    "SearchOptions",
    "SearchResult",
    "StoredEmbedding",
    "TextChunk",
]
