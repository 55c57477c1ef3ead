from typing import Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import (BigInteger, Column, Index, Integer, MetaData, String, Table, Text,
                        UniqueConstraint, text)
from sqlalchemy.dialects.postgresql import JSONB

from docindex.db.base import timestamp_columns

HNSW_M = 16
HNSW_EF_CONSTRUCTION = 64


def document_embeddings_table(
        name: str,
        dimensions: int,
        metadata: Optional[MetaData] = None,
        hnsw_m: int = HNSW_M,
        hnsw_ef_construction: int = HNSW_EF_CONSTRUCTION,
) -> Table:
    """
    Chunk embeddings table for one deployment.

    The name and vector width are configuration, so the table is built per
    store instead of being declared once at import time. Rows are keyed by
    (document_id, chunk_index); the HNSW index uses cosine distance and the
    GIN index serves ``metadata @> {...}`` containment filters.
    """
    metadata = metadata if metadata is not None else MetaData()
    return Table(
        name,
        metadata,
        Column("id", BigInteger, primary_key=True, autoincrement=True),
        Column("document_id", String(255), nullable=False),
        Column("chunk_index", Integer, nullable=False),
        Column("chunk_text", Text, nullable=False),
        Column("embedding", Vector(dimensions), nullable=False),
        Column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")),
        *timestamp_columns(),
        UniqueConstraint("document_id", "chunk_index", name=f"uq_{name}_document_chunk"),
        Index(f"ix_{name}_document_id", "document_id"),
        Index(
            f"ix_{name}_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": hnsw_m, "ef_construction": hnsw_ef_construction},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
        Index(f"ix_{name}_metadata_gin", "metadata", postgresql_using="gin"),
    )
