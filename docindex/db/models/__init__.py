from .document_embedding import document_embeddings_table

__all__ = ["document_embeddings_table"]
