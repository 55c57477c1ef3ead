"""
Base document parser interface
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, Field, field_validator

from docindex.core.config.settings import settings
from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from ..models import ElementType, ParseResult

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def file_extension(filename: Optional[str]) -> Optional[str]:
    if not filename or "." not in filename:
        return None
    return filename.rsplit(".", 1)[-1].lower()


def mime_type_for(filename: Optional[str]) -> str:
    return MIME_TYPES.get(file_extension(filename) or "", DEFAULT_MIME_TYPE)


def normalize_element_type(raw_type: Optional[str]) -> ElementType:
    """Map a service-specific element type name onto ElementType"""
    value = (raw_type or "").lower()
    if "heading" in value or "title" in value:
        return ElementType.HEADING
    if "list" in value:
        return ElementType.LIST
    if "table" in value:
        return ElementType.TABLE
    if "image" in value or "figure" in value or "picture" in value:
        return ElementType.IMAGE
    return ElementType.PARAGRAPH


class ParserConfig(BaseModel):
    """Configuration for document parsing services"""
    type: str = Field(default=settings.PARSER_TYPE, description="Primary parser type")
    fallback_to_unstructured: bool = Field(
        default=settings.PARSER_FALLBACK_TO_UNSTRUCTURED,
        description="Retry service failures of the primary parser on Unstructured")
    docling_api_url: str = Field(default=settings.DOCLING_API_URL)
    docling_api_key: str = Field(default=settings.DOCLING_API_KEY)
    enable_ocr: bool = Field(default=settings.DOCLING_ENABLE_OCR)
    ocr_language: str = Field(default=settings.DOCLING_OCR_LANGUAGE)
    unstructured_api_url: str = Field(default=settings.UNSTRUCTURED_API_URL)
    unstructured_api_key: str = Field(default=settings.UNSTRUCTURED_API_KEY)
    timeout: float = Field(
        default=settings.PARSE_TIMEOUT_SECONDS, description="Request timeout in seconds")
    supported_formats: Tuple[str, ...] = Field(default=settings.SUPPORTED_DOCUMENT_FORMATS)
    max_file_size_bytes: int = Field(default=settings.MAX_FILE_SIZE_BYTES)

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError('timeout must be positive')
        return v

    @field_validator('max_file_size_bytes')
    @classmethod
    def validate_max_file_size(cls, v):
        if v < 1:
            raise ValueError('max_file_size_bytes must be at least 1')
        return v

    @field_validator('docling_api_url', 'unstructured_api_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    def get(self, client: Optional[httpx.AsyncClient] = None) -> "BaseParser":
        """Build the configured parser, wrapped with the Unstructured fallback if enabled"""
        from .docling import DoclingParser
        from .unstructured import UnstructuredParser

        if self.type == "docling":
            primary = DoclingParser(self.model_copy(), client)
            if self.fallback_to_unstructured:
                from .fallback import FallbackParser
                return FallbackParser(primary, UnstructuredParser(self.model_copy(), client))
            return primary
        elif self.type == "unstructured":
            return UnstructuredParser(self.model_copy(), client)
        else:
            raise ValueError(f"Invalid parser type: {self.type}")


class BaseParser(ABC):
    """Base class for parsers backed by an HTTP document-conversion service"""

    service_name = "document parsing"

    def __init__(self, config: ParserConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.client = client

    async def extract_text(self, content: bytes, filename: Optional[str] = None) -> str:
        """
        Extract the flattened text of a document

        Args:
            content: Raw file bytes
            filename: Optional original filename, used for format checks and MIME type

        Returns:
            Non-empty document text
        """
        result = await self.extract_structured(content, filename)
        return result.text

    async def extract_structured(self, content: bytes, filename: Optional[str] = None) -> ParseResult:
        """
        Extract text, metadata and document elements

        Raises:
            DocumentProcessingError: On invalid input, unsupported format,
                service failure or a document without text
        """
        self._validate_input(content, filename)
        result = await self._parse(content, filename)
        if not result.text or not result.text.strip():
            raise DocumentProcessingError(
                ErrorKey.EMPTY_CONTENT,
                details={"filename": filename},
            )
        logger.debug(
            f"{self.service_name} extracted {len(result.text)} characters "
            f"and {len(result.elements)} elements from {filename or 'document'}")
        return result

    @abstractmethod
    async def _parse(self, content: bytes, filename: Optional[str]) -> ParseResult:
        """Call the service and convert its response"""
        raise NotImplementedError

    def _validate_input(self, content: bytes, filename: Optional[str]) -> None:
        if not content:
            raise DocumentProcessingError(
                ErrorKey.INVALID_INPUT,
                details={"filename": filename},
                error_variables=["document content is empty"],
            )
        if len(content) > self.config.max_file_size_bytes:
            raise DocumentProcessingError(
                ErrorKey.INVALID_INPUT,
                details={"filename": filename, "size": len(content)},
                error_variables=[
                    f"document is {len(content)} bytes, limit is {self.config.max_file_size_bytes}"],
            )
        if not filename:
            return  # format-agnostic without a filename
        ext = file_extension(filename)
        if ext not in self.config.supported_formats:
            raise DocumentProcessingError(
                ErrorKey.UNSUPPORTED_FORMAT,
                details={"filename": filename},
                error_variables=[ext or "none", ", ".join(self.config.supported_formats)],
            )

    async def _post_file(
            self,
            url: str,
            content: bytes,
            filename: Optional[str],
            field_name: str,
            form_fields: Dict[str, Any],
            headers: Dict[str, str],
    ) -> httpx.Response:
        """Upload a file as multipart form data under the configured timeout.

        Args:
            url: Service endpoint
            content: File bytes
            filename: Original filename, "document" when unknown
            field_name: Multipart field carrying the file
            form_fields: Additional form data
            headers: Request headers (authentication)

        Returns:
            The successful HTTP response
        """
        files = {field_name: (filename or "document", content, mime_type_for(filename))}
        timeout = self.config.timeout

        async def send(client: httpx.AsyncClient) -> httpx.Response:
            return await asyncio.wait_for(
                client.post(url, data=form_fields, files=files, headers=headers),
                timeout=timeout,
            )

        try:
            if self.client is not None:
                response = await send(self.client)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await send(client)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Timeout calling {self.service_name} at {url}")
            raise DocumentProcessingError(
                ErrorKey.PARSE_TIMEOUT,
                details={"timeout": timeout, "filename": filename},
                error_variables=[f"{timeout:g}"],
            ) from e
        except httpx.TransportError as e:
            logger.error(f"{self.service_name} unreachable at {url}: {e}")
            raise DocumentProcessingError(
                ErrorKey.PROVIDER_UNAVAILABLE,
                error_detail=str(e),
                details={"api_url": url},
                error_variables=[self.service_name],
            ) from e

        self._raise_for_status(response, filename)
        return response

    def _raise_for_status(self, response: httpx.Response, filename: Optional[str]) -> None:
        if response.is_success:
            return

        status = response.status_code
        body = response.text
        lowered = body.lower()
        details = {"status_code": status, "filename": filename}
        logger.error(f"HTTP error from {self.service_name}: {status} - {body[:500]}")

        if status == 400 and ("password" in lowered or "encrypted" in lowered):
            raise DocumentProcessingError(ErrorKey.PASSWORD_PROTECTED, body, details)
        if status == 400 and ("corrupted" in lowered or "invalid" in lowered):
            raise DocumentProcessingError(ErrorKey.CORRUPTED_FILE, body, details)
        if status == 429:
            raise DocumentProcessingError(
                ErrorKey.RATE_LIMITED, body, details, error_variables=[self.service_name])
        if status in (502, 503, 504):
            raise DocumentProcessingError(
                ErrorKey.PROVIDER_UNAVAILABLE, body, details, error_variables=[self.service_name])
        raise DocumentProcessingError(ErrorKey.CORRUPTED_FILE, body, details)

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Failed to parse JSON response from {self.service_name}: {e}")
            raise DocumentProcessingError(
                ErrorKey.CORRUPTED_FILE,
                error_detail=f"non-JSON response: {response.text[:200]}",
            ) from e

    @staticmethod
    def _string_rows(rows: Any) -> Optional[List[List[str]]]:
        if not isinstance(rows, list):
            return None
        return [[str(cell) for cell in row] for row in rows if isinstance(row, list)]
