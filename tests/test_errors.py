"""
Tests for error classification
"""

import json

import httpx
import pytest

from bitbucket_mcp.errors import (
    ApiError,
    AuthMissingError,
    BitbucketError,
    ErrorCode,
    ErrorContext,
    NetworkError,
    ValidationError,
    classify,
    format_error_for_tool,
    user_friendly_message,
)


class TestClassifyStatus:
    """Classification from HTTP status codes."""

    @pytest.mark.parametrize(
        "status,code",
        [
            (401, ErrorCode.ACCESS_DENIED),
            (403, ErrorCode.ACCESS_DENIED),
            (404, ErrorCode.NOT_FOUND),
            (429, ErrorCode.RATE_LIMIT_ERROR),
            (400, ErrorCode.VALIDATION_ERROR),
            (422, ErrorCode.VALIDATION_ERROR),
        ],
    )
    def test_status_codes(self, status, code):
        result = classify(ApiError("Request failed", status))

        assert result.code is code
        assert result.http_status == status

    def test_server_error_is_unexpected(self):
        result = classify(ApiError("Boom", 502))

        assert result.code is ErrorCode.UNEXPECTED_ERROR
        assert result.http_status == 502

    def test_rate_limit_beats_body(self):
        """429 wins even when the body suggests something else."""
        body = json.dumps({"error": {"message": "Resource not found"}})
        assert classify(ApiError("x", 429, body)).code is ErrorCode.RATE_LIMIT_ERROR


class TestClassifyVendorBodies:
    """Bitbucket error body shapes."""

    def test_nested_error_message(self):
        body = json.dumps({"type": "error", "error": {"message": "Repository not found", "detail": ""}})
        assert classify(ApiError("x", 500, body)).code is ErrorCode.NOT_FOUND

    def test_nested_error_detail(self):
        body = {"error": {"message": "Bad", "detail": "You do not have permission"}}
        assert classify(ApiError("x", 500, body)).code is ErrorCode.ACCESS_DENIED

    def test_type_error_with_status(self):
        body = json.dumps({"type": "error", "status": 404})
        assert classify(ApiError("x", 500, body)).code is ErrorCode.NOT_FOUND

    def test_errors_array_status(self):
        body = json.dumps({"errors": [{"status": 403, "title": "Forbidden"}]})
        assert classify(ApiError("x", 500, body)).code is ErrorCode.ACCESS_DENIED

    def test_errors_array_title(self):
        body = json.dumps({"errors": [{"title": "Rate limit exceeded"}]})
        assert classify(ApiError("x", 500, body)).code is ErrorCode.RATE_LIMIT_ERROR

    def test_flat_message(self):
        body = json.dumps({"message": "Invalid query field"})
        assert classify(ApiError("x", 500, body)).code is ErrorCode.VALIDATION_ERROR

    def test_unparseable_body_falls_back_to_status(self):
        assert classify(ApiError("x", 404, "<html>")).code is ErrorCode.NOT_FOUND


class TestClassifyOther:
    """Transport failures, typed errors and plain exceptions."""

    def test_httpx_timeout(self):
        error = httpx.ReadTimeout("timed out")
        result = classify(error)

        assert result.code is ErrorCode.NETWORK_ERROR
        assert result.http_status == 500

    def test_httpx_connect_error(self):
        assert classify(httpx.ConnectError("refused")).code is ErrorCode.NETWORK_ERROR

    def test_typed_errors(self):
        assert classify(NetworkError("down")).code is ErrorCode.NETWORK_ERROR
        assert classify(AuthMissingError()).code is ErrorCode.ACCESS_DENIED
        validation = classify(ValidationError("workspace_slug is required"))
        assert validation.code is ErrorCode.VALIDATION_ERROR
        assert validation.http_status == 400

    def test_explicit_code_on_instance(self):
        error = BitbucketError("Commits failed", 500, code=ErrorCode.NETWORK_ERROR)
        assert classify(error).code is ErrorCode.NETWORK_ERROR

    def test_message_heuristics(self):
        assert classify(RuntimeError("Too many requests")).code is ErrorCode.RATE_LIMIT_ERROR
        assert classify(RuntimeError("workspace does not exist")).code is ErrorCode.NOT_FOUND

    def test_unknown(self):
        result = classify(RuntimeError("something odd"))

        assert result.code is ErrorCode.UNEXPECTED_ERROR
        assert result.http_status == 500


class TestMessages:
    """User-facing messages and tool formatting."""

    def test_not_found_message_mentions_entity(self):
        context = ErrorContext(entity_type="Repositories", entity_id="acme")
        message = user_friendly_message(ErrorCode.NOT_FOUND, context)

        assert message.startswith("Repositories acme not found")

    def test_network_message_includes_details(self):
        message = user_friendly_message(
            ErrorCode.NETWORK_ERROR,
            ErrorContext(entity_type="Commits", operation="searching"),
            "connection reset",
        )

        assert "Network error while searching commits" in message
        assert "connection reset" in message

    def test_format_error_for_tool(self):
        response = format_error_for_tool(ValidationError("workspace_slug is required"))

        assert response["content"] == "Error: workspace_slug is required"
        assert response["metadata"] == {"errorType": "VALIDATION_ERROR", "statusCode": 400}
