from typing import Any, Dict, Optional, Sequence

from docindex.core.exceptions.error_messages import (
    ERROR_STATUS_CODES,
    RETRIABLE_ERROR_KEYS,
    ErrorKey,
    get_error_message,
)


class DocumentProcessingError(Exception):
    """
        Exception raised by every stage of the indexing pipeline.

        The error key is a stable code from the ErrorKey taxonomy; callers
        branch on it rather than on exception classes. The human-readable
        message is resolved from the error messages module.

        Attributes:
            error_key (ErrorKey): Stable error code.
            status_code (int): HTTP-style status hint for the fronting transport.
            error_detail (str): Free-form diagnostic text (e.g. upstream body).
            details (dict): Structured context such as filename or timeout.
            error_variables (Sequence[str]): Values interpolated into the message.

        Example:
            ```python
            raise DocumentProcessingError(
                ErrorKey.UNSUPPORTED_FORMAT,
                error_variables=["txt", "pdf, docx, doc"],
                details={"filename": "notes.txt"},
            )
            ```
        """
    def __init__(self, error_key: ErrorKey, error_detail: str = "",
                 details: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None,
                 error_variables: Sequence[str] = ()):
        self.error_key: ErrorKey = error_key
        self.status_code = status_code or ERROR_STATUS_CODES.get(error_key, 500)
        self.error_detail = error_detail
        self.details = details or {}
        self.error_variables = tuple(error_variables)
        self.message = get_error_message(error_key, error_variables=self.error_variables)
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.error_key.value

    @property
    def retriable(self) -> bool:
        return self.error_key in RETRIABLE_ERROR_KEYS

    def __repr__(self) -> str:
        return f"DocumentProcessingError({self.error_key.value!r}, {self.message!r})"
