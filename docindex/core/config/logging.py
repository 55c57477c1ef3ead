"""
Central logging configuration for the indexing pipeline.
Call  init_logging()  *once* early in startup (before anything logs).
"""

import logging
import os
import sys

from contextvars import ContextVar
from loguru import logger
from docindex.core.config.settings import settings


# --------------------------------------------------------------------------- #
# Context variables filled in by the indexer for every pipeline operation
# --------------------------------------------------------------------------- #
document_id_ctx: ContextVar[str] = ContextVar("document_id", default="-")
operation_ctx: ContextVar[str] = ContextVar("operation", default="-")


# --------------------------------------------------------------------------- #
# Helper – forward stdlib logging records to Loguru
# --------------------------------------------------------------------------- #
class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(
            depth=6, exception=record.exc_info  # keep caller info accurate
        ).log(level, record.getMessage())


def _add_context(record) -> None:
    record["extra"]["document_id"] = document_id_ctx.get()
    record["extra"]["operation"] = operation_ctx.get()


def _patch_stdlib(level: str) -> None:
    logging.root.setLevel(level)
    logging.root.handlers[:] = [_InterceptHandler()]  # replace all handlers
    for noise in ("asyncio", "httpx", "httpcore", "openai", "urllib3"):
        logging.getLogger(noise).setLevel(logging.WARNING)


# --------------------------------------------------------------------------- #
# Main entry point
# --------------------------------------------------------------------------- #
def init_logging() -> None:
    JSON_FORMAT = (
        '{{"timestamp":"{time:YYYY-MM-DD HH:mm:ss.SSS}",'
        '"level":"{level}",'
        '"message":{message!r},'
        '"file":"{file.name}","line":{line},"function":"{function}",'
        '"operation":"{extra[operation]}",'
        '"document_id":"{extra[document_id]}"}}'
    )

    logger.remove()  # drop default stderr sink
    logger.configure(
        extra={"document_id": "-", "operation": "-"},
        patcher=_add_context,
    )

    # Human-friendly console
    logger.add(
        sys.stdout,
        level=settings.LOG_LEVEL,
        colorize=True,
        format=(
            "<green>{time:HH:mm:ss.SSS}</green> "
            "<level>{level: <8}</level> "
            "<blue>{extra[operation]}</blue> "
            "[<cyan>{extra[document_id]}</cyan>] | "
            "<level>{message}</level>"
        ),
        enqueue=False,
    )

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)

        logger.add(
            f"{settings.LOG_DIR}/error.log",
            level="ERROR",
            rotation="5 MB",
            retention="14 days",
            compression="zip",
            format=JSON_FORMAT,
            enqueue=False,
        )

        logger.add(
            f"{settings.LOG_DIR}/app.log",
            level="DEBUG",
            rotation="10 MB",
            retention="10 days",
            compression="zip",
            format=JSON_FORMAT,
            enqueue=False,
        )

    # Feed stdlib logging into Loguru
    _patch_stdlib(settings.LOG_LEVEL)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if settings.DEBUG else logging.WARNING
    )

    logger.info("Loguru logging configured")
