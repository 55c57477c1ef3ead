"""
Document Indexer

Orchestrates parsing, chunking, embedding and vector storage for the
index / reindex / remove / search entry points.
"""

import logging
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, TypeVar

import httpx

from docindex.core.config.logging import document_id_ctx, operation_ctx
from docindex.core.utils.retry import RetryConfig, with_retry
from .config import IndexerConfig
from .db.base import BaseVectorStore
from .embedding.base import BaseEmbedder
from .models import EmbeddingResult, SearchOptions, SearchResult
from .parsers.base import BaseParser

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def _log_context(operation: str, document_id: str = "-") -> Iterator[None]:
    op_token = operation_ctx.set(operation)
    doc_token = document_id_ctx.set(document_id)
    try:
        yield
    finally:
        document_id_ctx.reset(doc_token)
        operation_ctx.reset(op_token)


class DocumentIndexer:
    """
    Entry point for the document pipeline.

    Per document the lifecycle is absent -> indexed -> (reindexed)* -> absent.
    Calls for the same document_id must be serialized by the caller.
    Every failure propagates unchanged; nothing is retried unless a
    RetryConfig is passed, in which case parser and embedder calls (never
    the store) are each wrapped in the retry policy.
    """

    def __init__(
        self,
        parser: BaseParser,
        embedder: BaseEmbedder,
        vector_store: BaseVectorStore,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.parser = parser
        self.embedder = embedder
        self.vector_store = vector_store
        self.retry_config = retry_config

    @classmethod
    def from_config(
        cls,
        config: Optional[IndexerConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "DocumentIndexer":
        """Build parser, chunker, embedder and store from configuration"""
        from docindex.dependencies.injector import create_injector
        return create_injector(config, http_client).get(cls)

    async def initialize(self) -> None:
        await self.vector_store.initialize()
        logger.info("Document indexer initialized")

    async def close(self) -> None:
        await self.vector_store.close()

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.retry_config is None:
            return await operation()
        return await with_retry(operation, self.retry_config)

    async def _parse_and_embed(
        self, content: bytes, document_id: str, filename: Optional[str]
    ) -> EmbeddingResult:
        text = await self._call(lambda: self.parser.extract_text(content, filename))
        result = await self._call(lambda: self.embedder.embed(text, document_id))
        logger.debug(f"Parsed {len(text)} characters into {len(result.chunks)} chunks")
        return result

    async def index(
        self,
        content: bytes,
        document_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        filename: Optional[str] = None,
    ) -> None:
        """
        Parse, embed and store a new document.

        Existing chunks are not deleted first; use ``reindex`` to replace a
        document that may already be stored.
        """
        with _log_context("index", document_id):
            result = await self._parse_and_embed(content, document_id, filename)
            await self.vector_store.store(result, metadata)
            logger.info(f"Indexed document {document_id} with {len(result.chunks)} chunks")

    async def reindex(
        self,
        content: bytes,
        document_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        filename: Optional[str] = None,
    ) -> None:
        """
        Replace every stored chunk of a document with a fresh parse.

        The old chunks are deleted only after parsing and embedding succeed,
        so a failed reindex leaves the previous version searchable.
        """
        with _log_context("reindex", document_id):
            result = await self._parse_and_embed(content, document_id, filename)
            await self.vector_store.delete_by_document(document_id)
            await self.vector_store.store(result, metadata)
            logger.info(f"Reindexed document {document_id} with {len(result.chunks)} chunks")

    async def remove(self, document_id: str) -> None:
        with _log_context("remove", document_id):
            await self.vector_store.delete_by_document(document_id)
            logger.info(f"Removed document {document_id}")

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        options = options or SearchOptions()
        with _log_context("search"):
            query_embedding = await self._call(lambda: self.embedder.embed_query(query))
            results = await self.vector_store.search(query_embedding, options)
            logger.info(f"Search returned {len(results)} results (top_k={options.top_k})")
            return results
