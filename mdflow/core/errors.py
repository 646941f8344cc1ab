"""Error taxonomy for the workflow engine."""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Structured error codes carried by failures and failure results."""

    VALIDATION_ERROR = "validation_error"  # 400: Bad input
    NOT_FOUND = "not_found"  # 404: Workflow file or step doesn't exist
    PARSE_ERROR = "parse_error"  # 422: Malformed workflow file
    IO_ERROR = "io_error"  # 500: Filesystem failure
    SYSTEM_ERROR = "system_error"  # 500: Anything else


class WorkflowError(Exception):
    """Base class for engine errors."""

    code = ErrorCode.SYSTEM_ERROR

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class WorkflowNotFoundError(WorkflowError):
    code = ErrorCode.NOT_FOUND


class WorkflowValidationError(WorkflowError):
    code = ErrorCode.VALIDATION_ERROR


class WorkflowParseError(WorkflowError):
    """A single workflow file could not be parsed."""

    code = ErrorCode.PARSE_ERROR

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.reason = message


class WorkflowIOError(WorkflowError):
    code = ErrorCode.IO_ERROR


__all__ = [
    "ErrorCode",
    "WorkflowError",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
    "WorkflowParseError",
    "WorkflowIOError",
]
