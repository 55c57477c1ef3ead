import asyncio

import httpx
import pytest

from docindex.core.exceptions import DocumentProcessingError, ErrorKey
from docindex.modules.indexing.models import ElementType
from docindex.modules.indexing.parsers import (
    DoclingParser,
    FallbackParser,
    ParserConfig,
    UnstructuredParser,
    normalize_element_type,
)
from tests.conftest import mock_http_client

PDF_BYTES = b"%PDF-1.7 fake document bytes"


@pytest.fixture
def parser_config():
    """Fixture to provide a parser config pointing at test hosts"""
    return ParserConfig(
        type="docling",
        fallback_to_unstructured=False,
        docling_api_url="http://docling.test/",
        docling_api_key="docling-key",
        enable_ocr=True,
        ocr_language="eng",
        unstructured_api_url="http://unstructured.test",
        unstructured_api_key="unstructured-key",
        timeout=2.0,
        max_file_size_bytes=1024,
    )


def docling_payload(text="Jane Doe\n\nSenior Python engineer"):
    return {
        "text": text,
        "metadata": {"page_count": 2, "title": "Resume", "author": "Jane Doe",
                     "created_at": "2024-03-01T10:00:00Z"},
        "elements": [
            {"type": "section_heading", "content": "Jane Doe", "level": 1},
            {"type": "paragraph", "content": "Senior Python engineer"},
            {"type": "table", "content": "", "rows": [["Skill", "Years"], ["Python", 10]]},
            {"type": "picture", "content": ""},
        ],
    }


def docling_with(response: httpx.Response, parser_config, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return response
    return DoclingParser(parser_config, mock_http_client(handler))


@pytest.mark.asyncio
async def test_docling_extracts_structured_result(parser_config):
    seen = []
    parser = docling_with(httpx.Response(200, json=docling_payload()), parser_config, seen)

    result = await parser.extract_structured(PDF_BYTES, "jane.pdf")

    assert result.text.startswith("Jane Doe")
    assert result.metadata.page_count == 2
    assert result.metadata.title == "Resume"
    assert [e.type for e in result.elements] == [
        ElementType.HEADING, ElementType.PARAGRAPH, ElementType.TABLE, ElementType.IMAGE]
    assert result.elements[0].level == 1
    assert result.elements[2].rows == [["Skill", "Years"], ["Python", "10"]]

    request = seen[0]
    assert str(request.url) == "http://docling.test/parse"
    assert request.headers["Authorization"] == "Bearer docling-key"
    body = request.content
    assert b'name="file"; filename="jane.pdf"' in body
    assert b"application/pdf" in body
    assert b'name="enable_ocr"' in body
    assert b'name="ocr_language"' in body


@pytest.mark.asyncio
async def test_docling_extract_text(parser_config):
    parser = docling_with(httpx.Response(200, json=docling_payload("plain text")), parser_config)

    assert await parser.extract_text(PDF_BYTES, "cv.docx") == "plain text"


@pytest.mark.asyncio
async def test_docling_without_ocr_or_key(parser_config):
    seen = []
    config = parser_config.model_copy(update={"enable_ocr": False, "docling_api_key": ""})
    parser = docling_with(httpx.Response(200, json=docling_payload()), config, seen)

    await parser.extract_text(PDF_BYTES)

    assert "Authorization" not in seen[0].headers
    assert b"enable_ocr" not in seen[0].content
    assert b'filename="document"' in seen[0].content
    assert b"application/octet-stream" in seen[0].content


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   \n\t  "])
async def test_blank_text_is_empty_content(parser_config, text):
    parser = docling_with(httpx.Response(200, json=docling_payload(text)), parser_config)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "scan.pdf")
    assert exc_info.value.error_key == ErrorKey.EMPTY_CONTENT


@pytest.mark.asyncio
async def test_unsupported_extension_fails_before_request(parser_config):
    seen = []
    parser = docling_with(httpx.Response(200, json=docling_payload()), parser_config, seen)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "notes.txt")

    assert exc_info.value.error_key == ErrorKey.UNSUPPORTED_FORMAT
    assert "txt" in exc_info.value.message
    assert seen == []


@pytest.mark.asyncio
async def test_extension_check_is_case_insensitive(parser_config):
    parser = docling_with(httpx.Response(200, json=docling_payload()), parser_config)

    assert await parser.extract_text(PDF_BYTES, "CV.PDF")


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [b"", b"x" * 1025])
async def test_empty_or_oversized_content_is_invalid_input(parser_config, content):
    parser = docling_with(httpx.Response(200, json=docling_payload()), parser_config)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(content, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.INVALID_INPUT


@pytest.mark.asyncio
@pytest.mark.parametrize("status,body,expected", [
    (400, "File is password protected", ErrorKey.PASSWORD_PROTECTED),
    (400, "PDF is encrypted", ErrorKey.PASSWORD_PROTECTED),
    (400, "corrupted xref table", ErrorKey.CORRUPTED_FILE),
    (400, "Invalid document", ErrorKey.CORRUPTED_FILE),
    (429, "slow down", ErrorKey.RATE_LIMITED),
    (502, "bad gateway", ErrorKey.PROVIDER_UNAVAILABLE),
    (503, "unavailable", ErrorKey.PROVIDER_UNAVAILABLE),
    (504, "gateway timeout", ErrorKey.PROVIDER_UNAVAILABLE),
    (500, "internal error", ErrorKey.CORRUPTED_FILE),
    (404, "not found", ErrorKey.CORRUPTED_FILE),
])
async def test_http_errors_are_classified(parser_config, status, body, expected):
    parser = docling_with(httpx.Response(status, text=body), parser_config)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == expected
    assert exc_info.value.details["status_code"] == status


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>not json</html>"),
    httpx.Response(200, json=["not", "an", "object"]),
    httpx.Response(200, json={"metadata": {"page_count": 1}}),
    httpx.Response(200, json={"text": 42}),
])
async def test_malformed_body_is_corrupted_file(parser_config, response):
    parser = docling_with(response, parser_config)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.CORRUPTED_FILE


@pytest.mark.asyncio
@pytest.mark.parametrize("metadata, expected", [
    ({"page_count": "many", "title": "Resume"}, {"page_count": None, "title": "Resume"}),
    ({"created_at": "D:20240101120000Z", "author": "Jane Doe"}, {"created_at": None, "author": "Jane Doe"}),
    ({"title": ["not", "a", "string"], "page_count": 3}, {"title": None, "page_count": 3}),
    ("not an object", {"page_count": None, "title": None}),
])
async def test_invalid_metadata_does_not_fail_parse(parser_config, metadata, expected):
    payload = {"text": "Real resume text", "metadata": metadata}
    parser = docling_with(httpx.Response(200, json=payload), parser_config)

    result = await parser.extract_structured(PDF_BYTES, "cv.pdf")

    assert result.text == "Real resume text"
    for name, value in expected.items():
        assert getattr(result.metadata, name) == value


@pytest.mark.asyncio
async def test_malformed_elements_are_skipped(parser_config):
    payload = {
        "text": "Jane Doe",
        "elements": [
            {"type": "section_heading", "content": "Jane Doe", "level": "top"},
            "stray string",
            {"type": "paragraph", "content": "Python"},
        ],
    }
    parser = docling_with(httpx.Response(200, json=payload), parser_config)

    result = await parser.extract_structured(PDF_BYTES, "cv.pdf")

    assert [e.content for e in result.elements] == ["Python"]


@pytest.mark.asyncio
async def test_slow_service_times_out(parser_config):
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=docling_payload())

    config = parser_config.model_copy(update={"timeout": 0.05})
    parser = DoclingParser(config, mock_http_client(handler))

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.PARSE_TIMEOUT
    assert exc_info.value.retriable


@pytest.mark.asyncio
async def test_transport_timeout_is_parse_timeout(parser_config):
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    parser = DoclingParser(parser_config, mock_http_client(handler))

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.PARSE_TIMEOUT


@pytest.mark.asyncio
async def test_connection_failure_is_provider_unavailable(parser_config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    parser = DoclingParser(parser_config, mock_http_client(handler))

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.PROVIDER_UNAVAILABLE
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def unstructured_with(response: httpx.Response, parser_config, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return response
    return UnstructuredParser(parser_config, mock_http_client(handler))


@pytest.mark.asyncio
async def test_unstructured_joins_non_blank_elements(parser_config):
    elements = [
        {"type": "Title", "text": "  Jane Doe ", "metadata": {"page_number": 1, "category_depth": 0}},
        {"type": "NarrativeText", "text": "   ", "metadata": {"page_number": 1}},
        {"type": "ListItem", "text": "Python", "metadata": {"page_number": 2}},
        {"type": "NarrativeText", "text": 42},
        "garbage",
    ]
    seen = []
    parser = unstructured_with(httpx.Response(200, json=elements), parser_config, seen)

    result = await parser.extract_structured(PDF_BYTES, "cv.pdf")

    assert result.text == "Jane Doe\n\nPython"
    assert [e.type for e in result.elements] == [ElementType.HEADING, ElementType.LIST]
    assert result.metadata.page_count == 2

    request = seen[0]
    assert str(request.url) == "http://unstructured.test/general/v0/general"
    assert request.headers["unstructured-api-key"] == "unstructured-key"
    assert b'name="files"; filename="cv.pdf"' in request.content
    assert b'name="strategy"' in request.content


@pytest.mark.asyncio
async def test_unstructured_non_array_is_corrupted(parser_config):
    parser = unstructured_with(httpx.Response(200, json={"detail": "oops"}), parser_config)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.CORRUPTED_FILE


@pytest.mark.asyncio
async def test_unstructured_without_text_is_empty_content(parser_config):
    parser = unstructured_with(httpx.Response(200, json=[{"type": "Image", "text": ""}]), parser_config)

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.EMPTY_CONTENT


def routed_client(docling: httpx.Response, unstructured: httpx.Response, seen: list):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return docling if request.url.host == "docling.test" else unstructured
    return mock_http_client(handler)


@pytest.mark.asyncio
async def test_fallback_used_when_primary_unavailable(parser_config):
    seen = []
    client = routed_client(
        httpx.Response(503, text="down"),
        httpx.Response(200, json=[{"type": "NarrativeText", "text": "from fallback"}]),
        seen,
    )
    parser = FallbackParser(DoclingParser(parser_config, client), UnstructuredParser(parser_config, client))

    assert await parser.extract_text(PDF_BYTES, "cv.pdf") == "from fallback"
    assert seen == ["docling.test", "unstructured.test"]


@pytest.mark.asyncio
async def test_fallback_not_used_for_document_errors(parser_config):
    seen = []
    client = routed_client(
        httpx.Response(400, text="password required"),
        httpx.Response(200, json=[{"type": "NarrativeText", "text": "from fallback"}]),
        seen,
    )
    parser = FallbackParser(DoclingParser(parser_config, client), UnstructuredParser(parser_config, client))

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.PASSWORD_PROTECTED
    assert seen == ["docling.test"]


@pytest.mark.asyncio
async def test_fallback_validates_input_before_any_request(parser_config):
    seen = []
    client = routed_client(httpx.Response(503, text="down"), httpx.Response(503, text="down"), seen)
    parser = FallbackParser(DoclingParser(parser_config, client), UnstructuredParser(parser_config, client))

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(b"", "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.INVALID_INPUT
    assert seen == []


@pytest.mark.asyncio
async def test_blank_fallback_text_is_empty_content(parser_config):
    seen = []
    client = routed_client(
        httpx.Response(504, text="gateway timeout"),
        httpx.Response(200, json=[{"type": "Image", "text": ""}]),
        seen,
    )
    parser = FallbackParser(DoclingParser(parser_config, client), UnstructuredParser(parser_config, client))

    with pytest.raises(DocumentProcessingError) as exc_info:
        await parser.extract_text(PDF_BYTES, "cv.pdf")
    assert exc_info.value.error_key == ErrorKey.EMPTY_CONTENT
    assert seen == ["docling.test", "unstructured.test"]


def test_parser_config_builds_parsers(parser_config):
    assert isinstance(parser_config.get(), DoclingParser)
    assert isinstance(parser_config.model_copy(update={"fallback_to_unstructured": True}).get(), FallbackParser)
    assert isinstance(parser_config.model_copy(update={"type": "unstructured"}).get(), UnstructuredParser)
    with pytest.raises(ValueError):
        parser_config.model_copy(update={"type": "tika"}).get()


def test_parser_config_strips_trailing_slash(parser_config):
    assert parser_config.docling_api_url == "http://docling.test"


@pytest.mark.parametrize("raw,expected", [
    ("heading", ElementType.HEADING),
    ("Title", ElementType.HEADING),
    ("section_heading", ElementType.HEADING),
    ("ListItem", ElementType.LIST),
    ("list", ElementType.LIST),
    ("Table", ElementType.TABLE),
    ("Figure", ElementType.IMAGE),
    ("picture", ElementType.IMAGE),
    ("Image", ElementType.IMAGE),
    ("NarrativeText", ElementType.PARAGRAPH),
    (None, ElementType.PARAGRAPH),
])
def test_normalize_element_type(raw, expected):
    assert normalize_element_type(raw) == expected
