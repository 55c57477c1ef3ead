import logging
from typing import Optional

import httpx
from injector import Module, provider, singleton

from docindex.modules.indexing.chunking import BaseChunker
from docindex.modules.indexing.config import IndexerConfig
from docindex.modules.indexing.db import BaseVectorStore
from docindex.modules.indexing.embedding import BaseEmbedder
from docindex.modules.indexing.indexer import DocumentIndexer
from docindex.modules.indexing.parsers import BaseParser

logger = logging.getLogger(__name__)


class IndexingDependencies(Module):
    """Pipeline components as process-wide singletons built from IndexerConfig"""

    def __init__(
        self,
        config: Optional[IndexerConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._config = config
        self._http_client = http_client

    @provider
    @singleton
    def provide_config(self) -> IndexerConfig:
        return self._config or IndexerConfig()

    @provider
    @singleton
    def provide_chunker(self, config: IndexerConfig) -> BaseChunker:
        return config.chunking.get()

    @provider
    @singleton
    def provide_parser(self, config: IndexerConfig) -> BaseParser:
        return config.parser.get(self._http_client)

    @provider
    @singleton
    def provide_embedder(self, config: IndexerConfig, chunker: BaseChunker) -> BaseEmbedder:
        return config.embedding.get(chunker)

    @provider
    @singleton
    def provide_vector_store(self, config: IndexerConfig) -> BaseVectorStore:
        return config.vector_db.get()

    @provider
    @singleton
    def provide_indexer(
        self,
        config: IndexerConfig,
        parser: BaseParser,
        embedder: BaseEmbedder,
        vector_store: BaseVectorStore,
    ) -> DocumentIndexer:
        logger.debug(
            f"DI: building indexer with {config.parser.type} parser, "
            f"{config.embedding.type} embeddings and {config.vector_db.type} store")
        return DocumentIndexer(parser, embedder, vector_store, retry_config=config.retry)
