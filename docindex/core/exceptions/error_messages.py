import logging
from enum import Enum
from typing import Sequence

from docindex.core.config.settings import settings


logger = logging.getLogger(__name__)


class ErrorKey(Enum):
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    PASSWORD_PROTECTED = "PASSWORD_PROTECTED"
    CORRUPTED_FILE = "CORRUPTED_FILE"
    EMPTY_CONTENT = "EMPTY_CONTENT"
    PARSE_TIMEOUT = "PARSE_TIMEOUT"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_INPUT = "INVALID_INPUT"
    STORAGE_ERROR = "STORAGE_ERROR"


# Transient failures worth retrying or reporting as "try again later".
RETRIABLE_ERROR_KEYS = frozenset({
    ErrorKey.PARSE_TIMEOUT,
    ErrorKey.PROVIDER_UNAVAILABLE,
    ErrorKey.RATE_LIMITED,
})

# Status hints for whatever transport fronts the pipeline.
ERROR_STATUS_CODES = {
    ErrorKey.UNSUPPORTED_FORMAT: 415,
    ErrorKey.PASSWORD_PROTECTED: 422,
    ErrorKey.CORRUPTED_FILE: 422,
    ErrorKey.EMPTY_CONTENT: 422,
    ErrorKey.PARSE_TIMEOUT: 504,
    ErrorKey.PROVIDER_UNAVAILABLE: 503,
    ErrorKey.RATE_LIMITED: 429,
    ErrorKey.INVALID_INPUT: 400,
    ErrorKey.STORAGE_ERROR: 500,
}


ERROR_MESSAGES = {
    "en": {
        ErrorKey.UNSUPPORTED_FORMAT: "Unsupported file format: {0}. Supported formats: {1}.",
        ErrorKey.PASSWORD_PROTECTED: "The document is password protected. Please provide an unprotected version.",
        ErrorKey.CORRUPTED_FILE: "The document could not be processed. The file may be corrupted.",
        ErrorKey.EMPTY_CONTENT: "The document contains no text. It may be a scanned document without a text layer.",
        ErrorKey.PARSE_TIMEOUT: "Document processing timed out after {0} seconds.",
        ErrorKey.PROVIDER_UNAVAILABLE: "The {0} service is unavailable. Check that it is running and reachable.",
        ErrorKey.RATE_LIMITED: "Request limit exceeded for the {0} service. Please try again later.",
        ErrorKey.INVALID_INPUT: "Invalid input: {0}",
        ErrorKey.STORAGE_ERROR: "Vector store operation failed: {0}",
    },
}


def get_error_message(
    error_key: ErrorKey,
    lang: str = "en",
    error_variables: Sequence[str] = (),
) -> str:
    """
    Retrieves an error message for the requested language.
    Falls back to DEFAULT_LANGUAGE if the language is not supported.
    """
    # Ensure error_key is a valid Enum
    if not isinstance(error_key, ErrorKey):
        raise ValueError(f"Invalid error key: {error_key}")

    lang = lang if lang in settings.SUPPORTED_LANGUAGES else settings.DEFAULT_LANGUAGE
    template = ERROR_MESSAGES.get(lang, ERROR_MESSAGES["en"]).get(error_key)
    if template is None:
        logger.warning(f"No message for error key {error_key.value} in '{lang}'")
        return error_key.value

    # Missing variables render as "?" rather than failing the error path
    placeholders = template.count("{")
    values = list(error_variables) + ["?"] * max(placeholders - len(error_variables), 0)
    return template.format(*values)
