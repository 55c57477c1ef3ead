"""
Vector Store Module

Pluggable stores for chunk embeddings with cosine-similarity search.
"""

from .base import BaseVectorStore, VectorDBConfig
from .pgvector import PgVectorStore
from .qdrant import QdrantVectorStore

__all__ = ["BaseVectorStore", "PgVectorStore", "QdrantVectorStore", "VectorDBConfig"]
