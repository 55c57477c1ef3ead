"""
Pydantic configuration models for the indexing pipeline
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from docindex.core.utils.retry import RetryConfig
from .chunking import ChunkConfig
from .db import VectorDBConfig
from .embedding import EmbeddingConfig
from .parsers import ParserConfig


class IndexerConfig(BaseModel):
    """Complete indexing pipeline configuration"""
    model_config = ConfigDict(extra="forbid")

    parser: ParserConfig = Field(default_factory=ParserConfig)
    chunking: ChunkConfig = Field(default_factory=ChunkConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    vector_db: VectorDBConfig = Field(default_factory=VectorDBConfig)
    retry: Optional[RetryConfig] = Field(
        default=None, description="Wrap parser and embedder calls in the retry policy")

    @model_validator(mode='after')
    def validate_dimensions(self):
        if self.vector_db.dimensions != self.embedding.dimensions:
            raise ValueError(
                f'vector_db.dimensions ({self.vector_db.dimensions}) must match '
                f'embedding.dimensions ({self.embedding.dimensions})')
        return self

    @staticmethod
    def from_dict(data: Optional[dict]) -> "IndexerConfig":
        """Build from a nested dict; missing sections fall back to settings"""
        if not data:
            return IndexerConfig()

        parser = data.get("parser", None)
        chunking = data.get("chunking", None)
        embedding = data.get("embedding", None)
        vector_db = data.get("vector_db", None)
        retry = data.get("retry", None)

        embedding_config = EmbeddingConfig(**embedding) if embedding else EmbeddingConfig()
        vector_db = dict(vector_db or {})
        # The store is sized by the embedding model unless told otherwise
        vector_db.setdefault("dimensions", embedding_config.dimensions)

        return IndexerConfig(
            parser=ParserConfig(**parser) if parser else ParserConfig(),
            chunking=ChunkConfig(**chunking) if chunking else ChunkConfig(),
            embedding=embedding_config,
            vector_db=VectorDBConfig(**vector_db),
            retry=RetryConfig(**retry) if retry else None,
        )
