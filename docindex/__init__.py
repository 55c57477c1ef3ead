"""
docindex - document indexing and semantic search.

Parses uploaded documents through an external parsing service, chunks and
embeds their text, and stores the vectors in pgvector or Qdrant for
similarity search.
"""

__version__ = "0.1.0"
