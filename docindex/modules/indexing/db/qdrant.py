"""
Qdrant vector store implementation
"""

import hashlib
import logging
from typing import Any, Dict, List, Optional

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import (
    DatetimeRange,
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    HnswConfigDiff,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from docindex.db.base import utcnow
from ..models import CANDIDATE_ID_KEY, EmbeddingResult, SearchFilter, SearchOptions, SearchResult, rank_results
from .base import BaseVectorStore, VectorDBConfig, storage_errors, stored_embeddings

logger = logging.getLogger(__name__)

# Local mode reports a missing collection as ValueError
QDRANT_ERRORS = (UnexpectedResponse, ResponseHandlingException, httpx.HTTPError, ValueError, OSError)


def point_id(document_id: str, chunk_index: int) -> str:
    """
    Deterministic point id for a chunk.
    Qdrant point IDs must be integers or UUIDs, so the natural key
    "{document_id}_{chunk_index}" is hashed into a UUID-formatted string.
    """
    hash_hex = hashlib.sha256(f"{document_id}_{chunk_index}".encode('utf-8')).hexdigest()[:32]
    return f"{hash_hex[:8]}-{hash_hex[8:12]}-{hash_hex[12:16]}-{hash_hex[16:20]}-{hash_hex[20:32]}"


def _document_filter(document_id: str) -> Filter:
    return Filter(must=[FieldCondition(key="document_id", match=MatchValue(value=document_id))])


class QdrantVectorStore(BaseVectorStore):
    """Qdrant vector database provider"""

    def __init__(self, config: VectorDBConfig, client: Optional[AsyncQdrantClient] = None):
        super().__init__(config)
        self.client = client
        self.collection_name: str = config.collection_name

    def _get_client(self) -> AsyncQdrantClient:
        if self.client is None:
            if self.config.location:
                logger.info(f"Using local Qdrant at: {self.config.location}")
                self.client = AsyncQdrantClient(location=self.config.location)
            else:
                logger.info(f"Connecting to Qdrant at: {self.config.url}")
                self.client = AsyncQdrantClient(url=self.config.url, api_key=self.config.api_key)
        return self.client

    async def initialize(self) -> None:
        client = self._get_client()
        with storage_errors("initialize", QDRANT_ERRORS):
            if await client.collection_exists(self.collection_name):
                logger.info(f"Qdrant collection already exists: {self.collection_name}")
                return

            logger.info(
                f"Creating Qdrant collection '{self.collection_name}' "
                f"with dimension {self.config.dimensions}")
            await client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=self.config.dimensions,
                    distance=Distance.COSINE,
                    hnsw_config=HnswConfigDiff(
                        m=self.config.hnsw_m,
                        ef_construct=self.config.hnsw_ef_construction,
                    ),
                ),
            )
            await client.create_payload_index(
                collection_name=self.collection_name,
                field_name="document_id",
                field_schema=PayloadSchemaType.KEYWORD,
            )

    async def _existing_created_at(self, ids: List[str]) -> Dict[str, Any]:
        points = await self._get_client().retrieve(
            collection_name=self.collection_name,
            ids=ids,
            with_payload=["created_at"],
            with_vectors=False,
        )
        return {str(p.id): (p.payload or {}).get("created_at") for p in points}

    async def store(self, result: EmbeddingResult, metadata: Optional[Dict[str, Any]] = None) -> None:
        records = stored_embeddings(result, metadata)
        if not records:
            return

        ids = [point_id(r.document_id, r.chunk_index) for r in records]
        now = utcnow().isoformat()

        with storage_errors("store", QDRANT_ERRORS):
            # Overwrites keep the original creation time
            created = await self._existing_created_at(ids)
            points = [
                PointStruct(
                    id=pid,
                    vector=record.embedding,
                    payload={
                        **record.model_dump(mode="json", exclude={"embedding"}),
                        "start_offset": record.metadata["start_offset"],
                        "end_offset": record.metadata["end_offset"],
                        "created_at": created.get(pid) or now,
                        "updated_at": now,
                    },
                )
                for pid, record in zip(ids, records)
            ]
            await self._get_client().upsert(
                collection_name=self.collection_name, points=points, wait=True)

        logger.info(f"Stored {len(points)} chunks for document {result.document_id}")

    async def delete_by_document(self, document_id: str) -> None:
        with storage_errors("delete", QDRANT_ERRORS):
            await self._get_client().delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=_document_filter(document_id)),
                wait=True,
            )
        logger.info(f"Deleted chunks for document {document_id}")

    def build_filter(self, search_filter: Optional[SearchFilter]) -> Optional[Filter]:
        """Convert a SearchFilter to a Qdrant must-filter"""
        if search_filter is None or search_filter.is_empty():
            return None

        conditions = []
        if search_filter.document_ids:
            conditions.append(FieldCondition(
                key="document_id", match=MatchAny(any=list(search_filter.document_ids))))
        if search_filter.candidate_id:
            conditions.append(FieldCondition(
                key=f"metadata.{CANDIDATE_ID_KEY}", match=MatchValue(value=search_filter.candidate_id)))
        if search_filter.date_from or search_filter.date_to:
            conditions.append(FieldCondition(
                key="created_at",
                range=DatetimeRange(gte=search_filter.date_from, lte=search_filter.date_to)))
        return Filter(must=conditions)

    async def search(self, query_embedding: List[float], options: SearchOptions) -> List[SearchResult]:
        with storage_errors("search", QDRANT_ERRORS):
            query_response = await self._get_client().query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                limit=options.top_k,
                query_filter=self.build_filter(options.filter),
                score_threshold=options.threshold,
                with_payload=True,
                with_vectors=False,
            )

        results = []
        for point in query_response.points:
            payload = point.payload or {}
            results.append(SearchResult(
                document_id=payload.get("document_id", ""),
                chunk_text=payload.get("chunk_text", ""),
                chunk_index=payload.get("chunk_index", 0),
                similarity=point.score,
                metadata=payload.get("metadata") or {},
            ))
        return rank_results(results, options)

    async def count(self, document_id: Optional[str] = None) -> int:
        count_filter = _document_filter(document_id) if document_id is not None else None
        with storage_errors("count", QDRANT_ERRORS):
            response = await self._get_client().count(
                collection_name=self.collection_name,
                count_filter=count_filter,
                exact=True,
            )
        return response.count

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
