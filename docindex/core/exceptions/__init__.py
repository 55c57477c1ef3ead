from .error_messages import ErrorKey, RETRIABLE_ERROR_KEYS, get_error_message
from .exception_classes import DocumentProcessingError

__all__ = ["ErrorKey", "RETRIABLE_ERROR_KEYS", "get_error_message", "DocumentProcessingError"]
