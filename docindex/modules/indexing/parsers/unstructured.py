"""
Unstructured API client, the general-purpose fallback parser
"""

import logging
from typing import Any, Dict, List, Optional

from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from ..models import DocumentElement, DocumentMetadata, ParseResult
from .base import BaseParser, normalize_element_type

logger = logging.getLogger(__name__)


class UnstructuredParser(BaseParser):

    service_name = "Unstructured"

    async def _parse(self, content: bytes, filename: Optional[str]) -> ParseResult:
        form_fields = {
            "strategy": "auto",
            "output_format": "application/json",
        }
        headers = {}
        if self.config.unstructured_api_key:
            headers["unstructured-api-key"] = self.config.unstructured_api_key

        response = await self._post_file(
            f"{self.config.unstructured_api_url}/general/v0/general",
            content, filename, "files", form_fields, headers,
        )
        data = self._json(response)
        if not isinstance(data, list):
            logger.error(f"Unstructured API returned non-array response: {type(data).__name__}")
            raise DocumentProcessingError(
                ErrorKey.CORRUPTED_FILE,
                error_detail="expected an array of elements",
            )

        elements = [
            item for item in data
            if isinstance(item, dict) and isinstance(item.get("text"), str) and item["text"].strip()
        ]
        text = "\n\n".join(item["text"].strip() for item in elements)

        return ParseResult(
            text=text,
            metadata=DocumentMetadata(page_count=self._page_count(elements)),
            elements=[self._convert_element(item) for item in elements],
        )

    @staticmethod
    def _convert_element(item: Dict[str, Any]) -> DocumentElement:
        element_type = normalize_element_type(item.get("type"))
        metadata = item.get("metadata") if isinstance(item.get("metadata"), dict) else {}
        level = metadata.get("category_depth")
        return DocumentElement(
            type=element_type,
            content=item["text"].strip(),
            level=level if isinstance(level, int) else None,
        )

    @staticmethod
    def _page_count(elements: List[Dict[str, Any]]) -> Optional[int]:
        pages = [
            el["metadata"]["page_number"] for el in elements
            if isinstance(el.get("metadata"), dict)
            and isinstance(el["metadata"].get("page_number"), int)
        ]
        return max(pages) if pages else None
