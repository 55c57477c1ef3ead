"""
HuggingFace embedding provider implementation
"""

import logging
from typing import List, Optional

from ..chunking import BaseChunker
from .base import BaseEmbedder, EmbeddingConfig

logger = logging.getLogger(__name__)


class HuggingFaceEmbedder(BaseEmbedder):
    """Local sentence-transformers model through LangChain"""

    provider_name = "HuggingFace embeddings"

    def __init__(self, config: EmbeddingConfig, chunker: Optional[BaseChunker] = None):
        super().__init__(config, chunker)
        self.embeddings = None

    async def initialize(self) -> bool:
        """Initialize the HuggingFace embedding model"""
        try:
            from langchain_huggingface import HuggingFaceEmbeddings

            model_kwargs = {
                'device': self.config.device
            }
            # Normalization happens once, in BaseEmbedder
            encode_kwargs = {
                'normalize_embeddings': False,
                'batch_size': self.config.batch_size
            }

            self.embeddings = HuggingFaceEmbeddings(
                model_name=self.config.model_name,
                model_kwargs=model_kwargs,
                encode_kwargs=encode_kwargs
            )

            logger.info(f"Initialized HuggingFace embeddings with model: {self.config.model_name}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize HuggingFace embeddings: {e}")
            return False

    async def _ensure_model(self):
        if not self.embeddings:
            if not await self.initialize():
                raise RuntimeError("Failed to initialize embeddings model")

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        await self._ensure_model()
        return await self.embeddings.aembed_documents(texts)

    async def _embed_query_raw(self, query: str) -> List[float]:
        await self._ensure_model()
        return await self.embeddings.aembed_query(query)
