"""
Composite parser: primary service with a fallback for service-level failures
"""

import logging
from typing import Optional

from docindex.core.exceptions import DocumentProcessingError
from ..models import ParseResult
from .base import BaseParser

logger = logging.getLogger(__name__)


class FallbackParser(BaseParser):
    """
    Delegates to ``primary`` and re-parses the same bytes with ``fallback``
    when the primary service is unavailable, rate limited or timed out.
    Document-level errors (format, password, corruption, invalid input)
    are properties of the file and propagate from the primary.

    Input validation and the empty-text check run once, in
    ``extract_structured``, against the primary's configuration.
    """

    def __init__(self, primary: BaseParser, fallback: BaseParser):
        super().__init__(primary.config, primary.client)
        self.primary = primary
        self.fallback = fallback
        self.service_name = f"{primary.service_name} with {fallback.service_name} fallback"

    async def _parse(self, content: bytes, filename: Optional[str]) -> ParseResult:
        try:
            return await self.primary._parse(content, filename)
        except DocumentProcessingError as e:
            if not e.retriable:
                raise
            logger.warning(
                f"{self.primary.service_name} failed with {e.code}; "
                f"falling back to {self.fallback.service_name}")
            return await self.fallback._parse(content, filename)
