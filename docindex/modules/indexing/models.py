"""
Pydantic models shared by the indexing pipeline stages
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Metadata key matched by SearchFilter.candidate_id
CANDIDATE_ID_KEY = "candidate_id"


class ElementType(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    TABLE = "table"
    IMAGE = "image"


class DocumentElement(BaseModel):
    """Structured element extracted from a document, in document order"""
    type: ElementType = Field(default=ElementType.PARAGRAPH, description="Normalized element type")
    content: str = Field(default="", description="Text content of the element")
    level: Optional[int] = Field(default=None, description="Heading level")
    rows: Optional[List[List[str]]] = Field(default=None, description="Table cells, row by row")


class DocumentMetadata(BaseModel):
    page_count: Optional[int] = None
    title: Optional[str] = None
    author: Optional[str] = None
    created_at: Optional[datetime] = None


class ParseResult(BaseModel):
    """Result of document parsing with structure"""
    text: str = Field(description="Flattened, search-ready text")
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    elements: List[DocumentElement] = Field(default_factory=list)


class TextChunk(BaseModel):
    """Offset-addressable window of a document's text"""
    index: int = Field(ge=0, description="Index of the chunk in the sequence")
    text: str = Field(description="Text content of the chunk")
    start_offset: int = Field(ge=0, description="Starting character position in original text")
    end_offset: int = Field(description="Ending character position (exclusive) in original text")

    @field_validator('end_offset')
    @classmethod
    def validate_offsets(cls, v, info):
        if info.data and 'start_offset' in info.data and v <= info.data['start_offset']:
            raise ValueError('end_offset must be greater than start_offset')
        return v


class EmbeddedChunk(BaseModel):
    chunk: TextChunk
    embedding: List[float]


class EmbeddingResult(BaseModel):
    """Chunks of one document paired with their vectors"""
    document_id: str
    chunks: List[EmbeddedChunk] = Field(default_factory=list)


class StoredEmbedding(BaseModel):
    """Persisted chunk row/point, keyed by (document_id, chunk_index)"""
    document_id: str
    chunk_index: int
    chunk_text: str
    embedding: List[float] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SearchFilter(BaseModel):
    document_ids: Optional[List[str]] = Field(
        default=None, description="Allow-list of document IDs")
    candidate_id: Optional[str] = Field(
        default=None, description="Match metadata candidate_id")
    date_from: Optional[datetime] = Field(
        default=None, description="Lower bound (inclusive) on creation time")
    date_to: Optional[datetime] = Field(
        default=None, description="Upper bound (inclusive) on creation time")

    @field_validator('date_from', 'date_to')
    @classmethod
    def assume_utc(cls, v):
        # Naive bounds are UTC, matching stored creation times
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_empty(self) -> bool:
        return not (self.document_ids or self.candidate_id or self.date_from or self.date_to)


class SearchOptions(BaseModel):
    top_k: int = Field(default=5, gt=0, description="Maximum number of results")
    threshold: Optional[float] = Field(
        default=None, ge=-1.0, le=1.0, description="Minimum cosine similarity")
    filter: Optional[SearchFilter] = None

    @model_validator(mode='after')
    def validate_date_range(self):
        f = self.filter
        if f and f.date_from and f.date_to and f.date_from > f.date_to:
            raise ValueError('date_from must not be after date_to')
        return self


class SearchResult(BaseModel):
    """Ranked chunk returned by a similarity search"""
    document_id: str
    chunk_text: str
    chunk_index: int
    similarity: float = Field(description="Cosine similarity to the query")
    metadata: Dict[str, Any] = Field(default_factory=dict)


def rank_results(results: List[SearchResult], options: SearchOptions) -> List[SearchResult]:
    """Apply threshold, ordering and top_k to backend results"""
    if options.threshold is not None:
        results = [r for r in results if r.similarity >= options.threshold]
    results = sorted(results, key=lambda r: (-r.similarity, r.document_id, r.chunk_index))
    return results[:options.top_k]
