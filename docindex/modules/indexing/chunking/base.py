"""
Base chunking interface
"""

from abc import ABC, abstractmethod
from typing import List
from pydantic import BaseModel, Field, field_validator

from docindex.core.config.settings import settings
from ..models import TextChunk


class ChunkConfig(BaseModel):
    """Configuration for chunking strategy"""
    type: str = Field(default="sliding_window",
                      description="Type of chunking strategy")
    chunk_size: int = Field(
        default=settings.EMBEDDING_CHUNK_SIZE, description="Size of text chunks in characters")
    chunk_overlap: int = Field(
        default=settings.EMBEDDING_CHUNK_OVERLAP, description="Overlap between chunks in characters")

    @field_validator('chunk_size')
    @classmethod
    def validate_chunk_size(cls, v):
        if v < 1:
            raise ValueError('chunk_size must be at least 1')
        return v

    @field_validator('chunk_overlap')
    @classmethod
    def validate_chunk_overlap(cls, v, info):
        if v < 0:
            raise ValueError('chunk_overlap must be non-negative')
        if info.data and 'chunk_size' in info.data and v >= info.data['chunk_size']:
            raise ValueError('chunk_overlap must be less than chunk_size')
        return v

    def get(self) -> "BaseChunker":
        """Get the chunker based on the type"""
        if self.type == "sliding_window":
            from .sliding_window import SlidingWindowChunker
            return SlidingWindowChunker(self.model_copy())
        else:
            raise ValueError(f"Invalid chunker type: {self.type}")


class BaseChunker(ABC):
    """Base abstract class for text chunking strategies"""

    def __init__(self, config: ChunkConfig):
        self.config = config

    @abstractmethod
    def chunk_text(self, text: str) -> List[TextChunk]:
        """
        Split text into chunks

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects, ordered by index
        """
        raise NotImplementedError(
            "Subclasses must implement chunk_text method")
