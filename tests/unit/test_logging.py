import logging

import pytest
from loguru import logger

from docindex.core.config.logging import document_id_ctx, init_logging, operation_ctx


@pytest.fixture
def captured():
    """Fixture collecting loguru records after logging is initialized"""
    init_logging()
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(sink_id)


def test_stdlib_records_reach_loguru_with_context(captured):
    doc_token = document_id_ctx.set("doc-42")
    op_token = operation_ctx.set("index")
    try:
        logging.getLogger("docindex.test").warning("stored 3 chunks")
    finally:
        operation_ctx.reset(op_token)
        document_id_ctx.reset(doc_token)

    record = next(r for r in captured if r["message"] == "stored 3 chunks")
    assert record["level"].name == "WARNING"
    assert record["extra"]["document_id"] == "doc-42"
    assert record["extra"]["operation"] == "index"


def test_noisy_libraries_are_quieted(captured):
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("openai").level == logging.WARNING
