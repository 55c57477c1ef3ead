"""
Base embedding interface
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, List, Optional
from pydantic import BaseModel, Field, field_validator
import numpy as np

from docindex.core.config.settings import settings
from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from ..chunking import BaseChunker, ChunkConfig
from ..models import EmbeddedChunk, EmbeddingResult

logger = logging.getLogger(__name__)


class EmbeddingConfig(BaseModel):
    """Configuration for embedding provider"""
    type: str = Field(default=settings.EMBEDDING_PROVIDER,
                      description="Type of embedding provider")
    model_name: str = Field(default=settings.EMBEDDING_MODEL,
                            description="Name of the embedding model")
    dimensions: int = Field(
        default=settings.EMBEDDING_DIMENSIONS, description="Vector dimensionality")
    batch_size: int = Field(
        default=settings.EMBEDDING_BATCH_SIZE, description="Batch size for processing texts")
    timeout: float = Field(
        default=settings.EMBEDDING_TIMEOUT_SECONDS, description="Per-request timeout in seconds")
    normalize_embeddings: bool = Field(
        default=True, description="Whether to normalize embeddings")
    device: str = Field(
        default="cpu", description="Device to run a local model on")
    api_key: Optional[str] = Field(
        default=settings.OPENAI_API_KEY, description="API key for external services")
    base_url: Optional[str] = Field(
        default=settings.OPENAI_BASE_URL, description="Base URL for API endpoints")

    @field_validator('dimensions', 'batch_size')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError('value must be at least 1')
        return v

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError('timeout must be positive')
        return v

    @field_validator('device')
    @classmethod
    def validate_device(cls, v):
        allowed_devices = ['cpu', 'cuda', 'mps']
        if v not in allowed_devices:
            raise ValueError(f'device must be one of {allowed_devices}')
        return v

    def get(self, chunker: Optional[BaseChunker] = None) -> "BaseEmbedder":
        if self.type == "openai":
            from .openai import OpenAIEmbedder
            return OpenAIEmbedder(self.model_copy(), chunker)
        elif self.type == "huggingface":
            from .huggingface import HuggingFaceEmbedder
            return HuggingFaceEmbedder(self.model_copy(), chunker)
        else:
            raise ValueError(f"Invalid embedding type: {self.type}")


class BaseEmbedder(ABC):
    """Base abstract class for text embedding providers"""

    provider_name = "embedding"

    def __init__(self, config: EmbeddingConfig, chunker: Optional[BaseChunker] = None):
        self.config = config
        self.chunker = chunker or ChunkConfig().get()

    async def get_dimension(self) -> int:
        """Get the dimension of the embeddings"""
        return self.config.dimensions

    @abstractmethod
    async def initialize(self) -> bool:
        """Initialize the embedding model"""
        raise NotImplementedError

    @abstractmethod
    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts (one provider request)

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        raise NotImplementedError

    @abstractmethod
    async def _embed_query_raw(self, query: str) -> List[float]:
        raise NotImplementedError

    async def embed(self, text: str, document_id: str) -> EmbeddingResult:
        """
        Chunk a document's text and embed every chunk

        Args:
            text: Extracted document text
            document_id: Owning document identifier

        Returns:
            EmbeddingResult with one vector per chunk, in chunk order
        """
        chunks = self.chunker.chunk_text(text)
        if not chunks:
            return EmbeddingResult(document_id=document_id, chunks=[])

        vectors: List[List[float]] = []
        for batch in self._batch_texts([c.text for c in chunks]):
            batch_vectors = await self._call_provider(self.embed_texts(batch))
            self._validate_vectors(batch_vectors, expected=len(batch))
            vectors.extend(batch_vectors)

        vectors = self._normalize_embeddings(np.asarray(vectors, dtype=float)).tolist()
        logger.debug(f"Embedded {len(chunks)} chunks for document {document_id}")
        return EmbeddingResult(
            document_id=document_id,
            chunks=[EmbeddedChunk(chunk=c, embedding=v) for c, v in zip(chunks, vectors)],
        )

    async def embed_query(self, query: str) -> List[float]:
        """
        Generate embedding for a search query; the query is embedded whole

        Args:
            query: Query text to embed

        Returns:
            Embedding vector in the same space as document chunks
        """
        vector = await self._call_provider(self._embed_query_raw(query))
        self._validate_vectors([vector], expected=1)
        return self._normalize_embeddings(np.asarray([vector], dtype=float))[0].tolist()

    async def _call_provider(self, call: Awaitable):
        """Await a provider call under the configured timeout, classifying failures"""
        try:
            return await asyncio.wait_for(call, timeout=self.config.timeout)
        except DocumentProcessingError:
            raise
        except asyncio.TimeoutError as e:
            raise DocumentProcessingError(
                ErrorKey.PROVIDER_UNAVAILABLE,
                error_detail=f"{self.provider_name} request timed out after {self.config.timeout}s",
                details={"timeout": self.config.timeout},
                error_variables=[self.provider_name],
            ) from e
        except Exception as e:
            classified = self._classify_error(e)
            if classified is None:
                raise
            logger.error(f"{self.provider_name} request failed: {e}")
            raise classified from e

    def _classify_error(self, error: Exception) -> Optional[DocumentProcessingError]:
        """Map a provider exception to the error taxonomy; None leaves it unchanged"""
        if isinstance(error, (ConnectionError, OSError)):
            return DocumentProcessingError(
                ErrorKey.PROVIDER_UNAVAILABLE,
                error_detail=str(error),
                error_variables=[self.provider_name],
            )
        return None

    def _validate_vectors(self, vectors: List[List[float]], expected: int) -> None:
        if len(vectors) != expected:
            raise DocumentProcessingError(
                ErrorKey.PROVIDER_UNAVAILABLE,
                error_detail=f"expected {expected} embeddings, got {len(vectors)}",
                error_variables=[self.provider_name],
            )
        for vector in vectors:
            if len(vector) != self.config.dimensions:
                raise DocumentProcessingError(
                    ErrorKey.PROVIDER_UNAVAILABLE,
                    error_detail=f"expected dimension {self.config.dimensions}, got {len(vector)}",
                    error_variables=[self.provider_name],
                )

    def _normalize_embeddings(self, embeddings: np.ndarray) -> np.ndarray:
        """Normalize embeddings to unit vectors"""
        if self.config.normalize_embeddings:
            norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
            norms = np.where(norms == 0, 1, norms)  # Avoid division by zero
            return embeddings / norms
        return embeddings

    def _batch_texts(self, texts: List[str]) -> List[List[str]]:
        """Split texts into batches for processing"""
        batch_size = self.config.batch_size
        return [texts[i:i + batch_size] for i in range(0, len(texts), batch_size)]
