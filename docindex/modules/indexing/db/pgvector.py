"""
PostgreSQL + pgvector store implementation
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import MetaData, delete, func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from docindex.db.models import document_embeddings_table
from ..models import CANDIDATE_ID_KEY, EmbeddingResult, SearchFilter, SearchOptions, SearchResult, rank_results
from .base import BaseVectorStore, VectorDBConfig, storage_errors, stored_embeddings

logger = logging.getLogger(__name__)

DB_ERRORS = (SQLAlchemyError, OSError)


class PgVectorStore(BaseVectorStore):
    """Chunk embeddings in a PostgreSQL table with an HNSW cosine index"""

    def __init__(self, config: VectorDBConfig, engine: Optional[AsyncEngine] = None):
        super().__init__(config)
        self.engine = engine
        self._owns_engine = engine is None
        self.metadata = MetaData()
        self.table = document_embeddings_table(
            config.collection_name,
            config.dimensions,
            self.metadata,
            hnsw_m=config.hnsw_m,
            hnsw_ef_construction=config.hnsw_ef_construction,
        )

    def _get_engine(self) -> AsyncEngine:
        if self.engine is None:
            self.engine = create_async_engine(
                self.config.database_url,
                echo=False,
                pool_pre_ping=True,
            )
        return self.engine

    async def initialize(self) -> None:
        with storage_errors("initialize", DB_ERRORS):
            async with self._get_engine().begin() as conn:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                await conn.run_sync(self.metadata.create_all, checkfirst=True)
        logger.info(f"Initialized pgvector table: {self.table.name}")

    def upsert_statement(self):
        t = self.table
        stmt = pg_insert(t)
        return stmt.on_conflict_do_update(
            index_elements=[t.c.document_id, t.c.chunk_index],
            set_={
                "chunk_text": stmt.excluded["chunk_text"],
                "embedding": stmt.excluded["embedding"],
                "metadata": stmt.excluded["metadata"],
                "updated_at": func.now(),
            },
        )

    async def store(self, result: EmbeddingResult, metadata: Optional[Dict[str, Any]] = None) -> None:
        # created_at/updated_at come from column defaults
        rows = [
            record.model_dump(exclude={"created_at", "updated_at"})
            for record in stored_embeddings(result, metadata)
        ]
        if not rows:
            return

        with storage_errors("store", DB_ERRORS):
            async with self._get_engine().begin() as conn:
                await conn.execute(self.upsert_statement(), rows)
        logger.info(f"Stored {len(rows)} chunks for document {result.document_id}")

    async def delete_by_document(self, document_id: str) -> None:
        stmt = delete(self.table).where(self.table.c.document_id == document_id)
        with storage_errors("delete", DB_ERRORS):
            async with self._get_engine().begin() as conn:
                deleted = await conn.execute(stmt)
        logger.info(f"Deleted {deleted.rowcount} chunks for document {document_id}")

    def _filter_conditions(self, search_filter: Optional[SearchFilter]) -> List[Any]:
        if search_filter is None:
            return []
        t = self.table
        conditions = []
        if search_filter.document_ids:
            conditions.append(t.c.document_id.in_(search_filter.document_ids))
        if search_filter.candidate_id:
            # @> containment is served by the GIN index
            conditions.append(t.c["metadata"].contains({CANDIDATE_ID_KEY: search_filter.candidate_id}))
        if search_filter.date_from:
            conditions.append(t.c.created_at >= search_filter.date_from)
        if search_filter.date_to:
            conditions.append(t.c.created_at <= search_filter.date_to)
        return conditions

    def search_statement(self, query_embedding: List[float], options: SearchOptions):
        t = self.table
        distance = t.c.embedding.cosine_distance(query_embedding)
        stmt = select(
            t.c.document_id,
            t.c.chunk_text,
            t.c.chunk_index,
            t.c["metadata"],
            distance.label("distance"),
        ).where(*self._filter_conditions(options.filter))
        if options.threshold is not None:
            stmt = stmt.where(distance <= 1 - options.threshold)
        return stmt.order_by(distance, t.c.document_id, t.c.chunk_index).limit(options.top_k)

    async def search(self, query_embedding: List[float], options: SearchOptions) -> List[SearchResult]:
        stmt = self.search_statement(query_embedding, options)
        with storage_errors("search", DB_ERRORS):
            async with self._get_engine().connect() as conn:
                rows = (await conn.execute(stmt)).mappings().all()

        results = [
            SearchResult(
                document_id=row["document_id"],
                chunk_text=row["chunk_text"],
                chunk_index=row["chunk_index"],
                similarity=1.0 - float(row["distance"]),
                metadata=row["metadata"] or {},
            )
            for row in rows
        ]
        return rank_results(results, options)

    async def count(self, document_id: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(self.table)
        if document_id is not None:
            stmt = stmt.where(self.table.c.document_id == document_id)
        with storage_errors("count", DB_ERRORS):
            async with self._get_engine().connect() as conn:
                return (await conn.execute(stmt)).scalar_one()

    async def close(self) -> None:
        if self.engine is not None and self._owns_engine:
            await self.engine.dispose()
            self.engine = None
