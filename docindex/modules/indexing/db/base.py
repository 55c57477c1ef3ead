"""
Base vector store interface
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

from pydantic import BaseModel, Field, field_validator, model_validator

from docindex.core.config.settings import settings
from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from ..models import EmbeddingResult, SearchOptions, SearchResult, StoredEmbedding

logger = logging.getLogger(__name__)


class VectorDBConfig(BaseModel):
    """Configuration for vector database"""
    type: str = Field(default=settings.VECTOR_STORE_TYPE, description="Type of vector database")
    collection_name: Optional[str] = Field(
        default=None, description="Table (pgvector) or collection (qdrant) name")
    dimensions: int = Field(
        default=settings.EMBEDDING_DIMENSIONS, description="Vector dimension")

    # pgvector
    database_url: str = Field(
        default=settings.DATABASE_URL, description="SQLAlchemy async database URL")

    # qdrant
    url: Optional[str] = Field(default=settings.QDRANT_URL, description="Qdrant server URL")
    api_key: Optional[str] = Field(default=settings.QDRANT_API_KEY, description="Qdrant API key")
    location: Optional[str] = Field(
        default=None, description="Local Qdrant location, e.g. ':memory:'; overrides url")

    # HNSW specific parameters
    hnsw_m: int = Field(default=16, description="HNSW M parameter")
    hnsw_ef_construction: int = Field(
        default=64, description="HNSW ef_construction parameter")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        allowed_types = ['pgvector', 'qdrant']
        if v not in allowed_types:
            raise ValueError(f'type must be one of {allowed_types}')
        return v

    @field_validator('dimensions', 'hnsw_m', 'hnsw_ef_construction')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError('value must be at least 1')
        return v

    @model_validator(mode='after')
    def default_collection_name(self):
        if not self.collection_name:
            self.collection_name = (settings.QDRANT_COLLECTION if self.type == "qdrant"
                                    else settings.VECTOR_STORE_TABLE_NAME)
        return self

    def get(self) -> "BaseVectorStore":
        if self.type == "pgvector":
            from .pgvector import PgVectorStore
            return PgVectorStore(self.model_copy())
        elif self.type == "qdrant":
            from .qdrant import QdrantVectorStore
            return QdrantVectorStore(self.model_copy())
        else:
            raise ValueError(f"Invalid vector database type: {self.type}")


@contextmanager
def storage_errors(operation: str, errors: Tuple[Type[BaseException], ...]) -> Iterator[None]:
    """Re-raise backend driver errors as STORAGE_ERROR"""
    try:
        yield
    except DocumentProcessingError:
        raise
    except errors as e:
        logger.error(f"Vector store {operation} failed: {e}")
        raise DocumentProcessingError(
            ErrorKey.STORAGE_ERROR,
            error_detail=str(e),
            details={"operation": operation},
            error_variables=[f"{operation}: {e}"],
        ) from e


def chunk_metadata(base: Optional[Dict[str, Any]], start_offset: int, end_offset: int) -> Dict[str, Any]:
    """Caller metadata merged with the chunk's offsets"""
    merged = dict(base or {})
    merged["start_offset"] = start_offset
    merged["end_offset"] = end_offset
    return merged


def stored_embeddings(
    result: EmbeddingResult, metadata: Optional[Dict[str, Any]] = None
) -> List[StoredEmbedding]:
    """
    Records to persist for an embedding result, one per chunk

    Timestamps are left unset; each backend assigns them on write.
    """
    return [
        StoredEmbedding(
            document_id=result.document_id,
            chunk_index=item.chunk.index,
            chunk_text=item.chunk.text,
            embedding=item.embedding,
            metadata=chunk_metadata(metadata, item.chunk.start_offset, item.chunk.end_offset),
        )
        for item in result.chunks
    ]


class BaseVectorStore(ABC):
    """Base abstract class for chunk embedding stores"""

    def __init__(self, config: VectorDBConfig):
        self.config = config

    @abstractmethod
    async def initialize(self) -> None:
        """Create the table/collection and indexes; safe to call repeatedly"""
        raise NotImplementedError

    @abstractmethod
    async def store(self, result: EmbeddingResult, metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Upsert every chunk of an embedding result

        Args:
            result: Chunks and vectors of one document
            metadata: Caller metadata attached to every chunk
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> None:
        """Delete all chunks of a document; unknown documents are a no-op"""
        raise NotImplementedError

    @abstractmethod
    async def search(self, query_embedding: List[float], options: SearchOptions) -> List[SearchResult]:
        """
        Cosine-similarity search

        Args:
            query_embedding: Query vector
            options: top_k, optional threshold and filter

        Returns:
            Results ordered by similarity, at most top_k
        """
        raise NotImplementedError

    @abstractmethod
    async def count(self, document_id: Optional[str] = None) -> int:
        """Count stored chunks, optionally for one document"""
        raise NotImplementedError

    async def close(self) -> None:
        """Close the database connection"""
        # Default implementation does nothing
        pass
