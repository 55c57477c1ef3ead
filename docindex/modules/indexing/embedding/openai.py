"""
OpenAI embedding provider implementation
"""

import logging
from typing import List, Optional

import openai

from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from ..chunking import BaseChunker
from .base import BaseEmbedder, EmbeddingConfig

logger = logging.getLogger(__name__)


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI embedding provider"""

    provider_name = "OpenAI embeddings"

    def __init__(self, config: EmbeddingConfig, chunker: Optional[BaseChunker] = None):
        super().__init__(config, chunker)
        self.client = None

    async def initialize(self) -> bool:
        """Initialize the OpenAI client"""
        try:
            from langchain_openai import OpenAIEmbeddings

            if not self.config.api_key:
                raise ValueError("OpenAI API key is required")

            client_kwargs = {
                "model": self.config.model_name,
                "openai_api_key": self.config.api_key,
                "chunk_size": self.config.batch_size,
                # Retries are owned by the pipeline's retry policy
                "max_retries": 0,
                "request_timeout": self.config.timeout,
            }
            if self.config.base_url:
                client_kwargs["openai_api_base"] = self.config.base_url
            # Only the text-embedding-3 family accepts a reduced dimension
            if self.config.model_name.startswith("text-embedding-3"):
                client_kwargs["dimensions"] = self.config.dimensions

            self.client = OpenAIEmbeddings(**client_kwargs)

            logger.info(f"Initialized OpenAI embeddings with model: {self.config.model_name}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize OpenAI embeddings: {e}")
            return False

    async def _ensure_client(self):
        if not self.client:
            if not await self.initialize():
                raise RuntimeError("Failed to initialize OpenAI client")

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        await self._ensure_client()
        return await self.client.aembed_documents(texts)

    async def _embed_query_raw(self, query: str) -> List[float]:
        await self._ensure_client()
        return await self.client.aembed_query(query)

    def _classify_error(self, error: Exception) -> Optional[DocumentProcessingError]:
        if isinstance(error, openai.RateLimitError):
            return DocumentProcessingError(
                ErrorKey.RATE_LIMITED,
                error_detail=str(error),
                error_variables=[self.provider_name],
            )
        # APITimeoutError is a subclass of APIConnectionError
        if isinstance(error, openai.APIConnectionError):
            return DocumentProcessingError(
                ErrorKey.PROVIDER_UNAVAILABLE,
                error_detail=str(error),
                error_variables=[self.provider_name],
            )
        if isinstance(error, openai.APIStatusError):
            if error.status_code >= 500:
                return DocumentProcessingError(
                    ErrorKey.PROVIDER_UNAVAILABLE,
                    error_detail=str(error),
                    details={"status_code": error.status_code},
                    error_variables=[self.provider_name],
                )
            return DocumentProcessingError(
                ErrorKey.INVALID_INPUT,
                error_detail=str(error),
                details={"status_code": error.status_code},
                error_variables=[f"{self.provider_name} rejected the request ({error.status_code})"],
            )
        return super()._classify_error(error)
