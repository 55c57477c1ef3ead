import re
from typing import Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from docindex.modules.indexing.chunking import ChunkConfig
from docindex.modules.indexing.db import QdrantVectorStore, VectorDBConfig
from docindex.modules.indexing.embedding import BaseEmbedder, EmbeddingConfig
from docindex.modules.indexing.models import ParseResult
from docindex.modules.indexing.parsers import BaseParser, ParserConfig

TEST_DIMENSIONS = 128

_TOKEN = re.compile(r"\w+")


class VocabularyEmbedder(BaseEmbedder):
    """
    Deterministic bag-of-words embedder.
    Every distinct lower-cased token gets its own axis, so two texts are
    similar exactly when they share words.
    """

    provider_name = "test embeddings"

    def __init__(self, config: EmbeddingConfig, chunker=None):
        super().__init__(config, chunker)
        self.vocabulary: Dict[str, int] = {}
        self.batches: List[List[str]] = []

    async def initialize(self) -> bool:
        return True

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.config.dimensions
        for token in _TOKEN.findall(text.lower()):
            axis = self.vocabulary.setdefault(token, len(self.vocabulary) % self.config.dimensions)
            vector[axis] += 1.0
        return vector

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self.batches.append(list(texts))
        return [self._vector(t) for t in texts]

    async def _embed_query_raw(self, query: str) -> List[float]:
        return self._vector(query)


class TextParser(BaseParser):
    """Parser treating the uploaded bytes as UTF-8 text"""

    service_name = "plain text"

    def __init__(self, config: Optional[ParserConfig] = None):
        super().__init__(config or ParserConfig(supported_formats=("pdf", "docx", "doc", "txt")))

    async def _parse(self, content: bytes, filename: Optional[str]) -> ParseResult:
        return ParseResult(text=content.decode("utf-8"))


def mock_http_client(handler: Callable) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def embedding_config():
    """Fixture to provide a small-dimension embedding config"""
    return EmbeddingConfig(
        type="openai",
        model_name="test-model",
        dimensions=TEST_DIMENSIONS,
        batch_size=4,
        timeout=5.0,
        api_key="test-key",
    )


@pytest.fixture
def chunk_config():
    return ChunkConfig(chunk_size=200, chunk_overlap=20)


@pytest.fixture
def embedder(embedding_config, chunk_config):
    return VocabularyEmbedder(embedding_config, chunk_config.get())


@pytest.fixture
def text_parser():
    return TextParser()


@pytest_asyncio.fixture
async def qdrant_store():
    """Fixture to provide an initialized in-memory Qdrant store"""
    store = QdrantVectorStore(VectorDBConfig(
        type="qdrant",
        location=":memory:",
        collection_name="test_chunks",
        dimensions=TEST_DIMENSIONS,
    ))
    await store.initialize()
    yield store
    await store.close()
