"""
Embedding Module

Provides text embedding providers for chunk and query vectors.
"""

from .base import BaseEmbedder, EmbeddingConfig
from .huggingface import HuggingFaceEmbedder
from .openai import OpenAIEmbedder

__all__ = ["BaseEmbedder", "EmbeddingConfig", "HuggingFaceEmbedder", "OpenAIEmbedder"]
