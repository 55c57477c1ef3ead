"""
Docling document conversion service client
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from ..models import DocumentElement, DocumentMetadata, ParseResult
from .base import BaseParser, normalize_element_type

logger = logging.getLogger(__name__)


class DoclingParser(BaseParser):
    """High-fidelity PDF/DOCX parser with optional OCR"""

    service_name = "Docling"

    async def _parse(self, content: bytes, filename: Optional[str]) -> ParseResult:
        form_fields: Dict[str, Any] = {}
        if self.config.enable_ocr:
            form_fields["enable_ocr"] = "true"
            form_fields["ocr_language"] = self.config.ocr_language

        headers = {}
        if self.config.docling_api_key:
            headers["Authorization"] = f"Bearer {self.config.docling_api_key}"

        response = await self._post_file(
            f"{self.config.docling_api_url}/parse",
            content, filename, "file", form_fields, headers,
        )
        return self._convert_response(self._json(response))

    def _convert_response(self, data: Any) -> ParseResult:
        if not isinstance(data, dict) or not isinstance(data.get("text"), str):
            raise DocumentProcessingError(
                ErrorKey.CORRUPTED_FILE,
                error_detail="Docling response is not a parse result object",
            )

        return ParseResult(
            text=data["text"],
            metadata=self._convert_metadata(data.get("metadata")),
            elements=self._convert_elements(data.get("elements")),
        )

    @staticmethod
    def _convert_metadata(raw: Any) -> DocumentMetadata:
        """Optional fields that fail coercion are dropped, not fatal"""
        if not isinstance(raw, dict):
            if raw is not None:
                logger.warning(f"Ignoring non-object Docling metadata: {raw!r}")
            return DocumentMetadata()

        fields = {}
        for name in DocumentMetadata.model_fields:
            value = raw.get(name)
            if value is None:
                continue
            try:
                fields[name] = getattr(DocumentMetadata.model_validate({name: value}), name)
            except ValidationError:
                logger.warning(f"Ignoring invalid Docling metadata {name}={value!r}")
        return DocumentMetadata(**fields)

    def _convert_elements(self, raw: Any) -> List[DocumentElement]:
        if not isinstance(raw, list):
            return []

        elements = []
        for el in raw:
            if not isinstance(el, dict):
                continue
            try:
                elements.append(DocumentElement(
                    type=normalize_element_type(el.get("type")),
                    content=el.get("content") or "",
                    level=el.get("level"),
                    rows=self._string_rows(el.get("rows")),
                ))
            except ValidationError as e:
                logger.warning(f"Skipping malformed Docling element: {e}")
        return elements
