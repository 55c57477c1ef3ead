"""
Parsers Module

Clients for document conversion services turning PDF/DOCX bytes into text.
"""

from .base import BaseParser, ParserConfig, normalize_element_type
from .docling import DoclingParser
from .fallback import FallbackParser
from .unstructured import UnstructuredParser

__all__ = [
    "BaseParser",
    "DoclingParser",
    "FallbackParser",
    "ParserConfig",
    "UnstructuredParser",
    "normalize_element_type",
]
