"""Tests for mdflow MCP argument validation and structured responses."""

import pytest

from mdflow.core.errors import ErrorCode, WorkflowNotFoundError, WorkflowValidationError
from mdflow.mcp.validation import (
    build_workflow_request,
    error_from_exception,
    error_response,
    optional_bool,
    optional_string,
    require_string,
)


class TestErrorResponse:
    """Tests for error_response()."""

    def test_basic_error(self):
        resp = error_response(ErrorCode.NOT_FOUND, "Step not found")
        assert resp == {"success": False, "error_code": "not_found", "error": "Step not found"}

    def test_error_with_details_and_hint(self):
        resp = error_response(
            ErrorCode.VALIDATION_ERROR,
            "Bad input",
            details={"field": "title"},
            hint="Pass a title",
        )
        assert resp["details"] == {"field": "title"}
        assert resp["hint"] == "Pass a title"

    def test_no_hint_omitted(self):
        assert "hint" not in error_response(ErrorCode.IO_ERROR, "Disk error")

    def test_all_error_codes(self):
        for code in ErrorCode:
            resp = error_response(code, f"Test {code.value}")
            assert resp["error_code"] == code.value
            assert resp["success"] is False


class TestErrorFromException:
    def test_carries_code_and_hint(self):
        resp = error_from_exception(WorkflowValidationError("bad", hint="fix it"))
        assert resp == {
            "success": False,
            "error_code": "validation_error",
            "error": "bad",
            "hint": "fix it",
        }

    def test_not_found(self):
        assert error_from_exception(WorkflowNotFoundError("gone"))["error_code"] == "not_found"


class TestArgumentHelpers:
    def test_require_string(self):
        assert require_string({"step_id": "a"}, "step_id") == "a"

    @pytest.mark.parametrize("arguments", [{}, {"step_id": ""}, {"step_id": "  "}, {"step_id": 3}])
    def test_require_string_rejects(self, arguments):
        with pytest.raises(WorkflowValidationError, match="step_id"):
            require_string(arguments, "step_id")

    def test_optional_string(self):
        assert optional_string({}, "search") is None
        assert optional_string({"search": "x"}, "search") == "x"
        with pytest.raises(WorkflowValidationError):
            optional_string({"search": 5}, "search")

    def test_optional_bool(self):
        assert optional_bool({}, "is_entrypoint") is False
        assert optional_bool({"is_entrypoint": None}, "is_entrypoint") is False
        assert optional_bool({"is_entrypoint": True}, "is_entrypoint") is True
        with pytest.raises(WorkflowValidationError):
            optional_bool({"is_entrypoint": "yes"}, "is_entrypoint")


class TestBuildWorkflowRequest:
    def test_full(self):
        request = build_workflow_request(
            {
                "filename": "a.md",
                "title": "A",
                "content": "Body",
                "description": "D",
                "is_entrypoint": True,
            }
        )
        assert request.filename == "a.md"
        assert request.description == "D"
        assert request.is_entrypoint is True

    def test_defaults(self):
        request = build_workflow_request({"filename": "a", "title": "A", "content": "Body"})
        assert request.description is None
        assert request.is_entrypoint is False

    @pytest.mark.parametrize("missing", ["filename", "title", "content"])
    def test_required_fields(self, missing):
        arguments = {"filename": "a", "title": "A", "content": "Body"}
        del arguments[missing]
        with pytest.raises(WorkflowValidationError, match=missing):
            build_workflow_request(arguments)

    def test_blank_content_rejected(self):
        with pytest.raises(WorkflowValidationError, match="content"):
            build_workflow_request({"filename": "a", "title": "A", "content": "   "})
