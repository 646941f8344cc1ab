"""Argument checks and structured responses for the mdflow MCP server."""

from typing import Any, Dict, Mapping, Optional

from mdflow.core.errors import ErrorCode, WorkflowError, WorkflowValidationError
from mdflow.core.models import WorkflowRequest


def error_response(
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    hint: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a structured error response.

    Args:
        code: Error code enum value
        message: Human-readable error message
        details: Optional additional details
        hint: Optional hint for resolving the error

    Returns:
        Structured error response dictionary
    """
    response: Dict[str, Any] = {
        "success": False,
        "error_code": code.value,
        "error": message,
    }
    if details:
        response["details"] = details
    if hint:
        response["hint"] = hint
    return response



def error_from_exception(exc: WorkflowError) -> Dict[str, Any]:
    return error_response(exc.code, exc.message, hint=exc.hint)


def require_string(arguments: Mapping[str, Any], name: str) -> str:
    """Return a required non-blank string argument.

    Raises:
        WorkflowValidationError: Missing, blank or not a string
    """
    value = arguments.get(name)
    if not isinstance(value, str) or not value.strip():
        raise WorkflowValidationError(
            f"{name} parameter is required and must be a string",
            hint=f"Pass a non-empty '{name}' argument",
        )
    return value


def optional_string(arguments: Mapping[str, Any], name: str) -> Optional[str]:
    value = arguments.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise WorkflowValidationError(f"{name} parameter must be a string")
    return value


def optional_bool(arguments: Mapping[str, Any], name: str, default: bool = False) -> bool:
    value = arguments.get(name, default)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise WorkflowValidationError(f"{name} parameter must be a boolean")
    return value


def build_workflow_request(arguments: Mapping[str, Any]) -> WorkflowRequest:
    """Validate workflow_create_or_update arguments.

    filename, title and content are required; content may not be blank.
    """
    return WorkflowRequest(
        filename=require_string(arguments, "filename"),
        title=require_string(arguments, "title"),
        content=require_string(arguments, "content"),
        description=optional_string(arguments, "description"),
        is_entrypoint=optional_bool(arguments, "is_entrypoint"),
    )


__all__ = [
    "error_response",
    "error_from_exception",
    "require_string",
    "optional_string",
    "optional_bool",
    "build_workflow_request",
]
