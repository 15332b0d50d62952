"""
Errors - Taxonomy and Classification

Exception types raised by the client and dispatcher, and the classifier that
maps any failure onto a fixed set of error codes.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for consistent handling."""

    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_CURSOR = "INVALID_CURSOR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


DEFAULT_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ACCESS_DENIED: 403,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.RATE_LIMIT_ERROR: 429,
    ErrorCode.NETWORK_ERROR: 500,
    ErrorCode.INVALID_CURSOR: 400,
    ErrorCode.UNEXPECTED_ERROR: 500,
}


class BitbucketError(Exception):
    """Base error with classification attached."""

    code = ErrorCode.UNEXPECTED_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Any = None,
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.original_error = original_error
        self.code = code or type(self).code


class ValidationError(BitbucketError):
    """Missing or malformed caller input."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, original_error: Any = None):
        super().__init__(message, 400, original_error)


class InvalidCursorError(BitbucketError):
    """Pagination cursor that cannot be turned into a page number."""

    code = ErrorCode.INVALID_CURSOR

    def __init__(self, cursor: Any):
        super().__init__(f"Invalid pagination cursor: {cursor!r}", 400)
        self.cursor = cursor


class AuthMissingError(BitbucketError):
    """No credentials configured."""

    code = ErrorCode.ACCESS_DENIED

    def __init__(self, message: str = "Bitbucket credentials are missing"):
        super().__init__(message, None)


class ApiError(BitbucketError):
    """Non-2xx response from the Bitbucket API."""

    def __init__(self, message: str, status_code: int, body: Any = None):
        super().__init__(message, status_code, body)


class NetworkError(BitbucketError):
    """Transport-level failure (DNS, connect, timeout)."""

    code = ErrorCode.NETWORK_ERROR

    def __init__(self, message: str, original_error: Any = None):
        super().__init__(message, None, original_error)


@dataclass
class ErrorContext:
    """Context information for error handling."""

    entity_type: Optional[str] = None
    operation: Optional[str] = None
    source: Optional[str] = None
    entity_id: Optional[str] = None
    additional_info: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ErrorClassification:
    code: ErrorCode
    http_status: int


def _status_to_code(status: Optional[int]) -> Optional[ErrorCode]:
    if status is None:
        return None
    if status in (401, 403):
        return ErrorCode.ACCESS_DENIED
    if status == 404:
        return ErrorCode.NOT_FOUND
    if status == 429:
        return ErrorCode.RATE_LIMIT_ERROR
    if status in (400, 422):
        return ErrorCode.VALIDATION_ERROR
    return None


def _text_to_code(text: str) -> Optional[ErrorCode]:
    """Keyword heuristics over an error message (lowercased)."""
    text = text.lower()
    if "rate limit" in text or "too many requests" in text or "throttled" in text:
        return ErrorCode.RATE_LIMIT_ERROR
    if "not found" in text or "does not exist" in text or "no such resource" in text:
        return ErrorCode.NOT_FOUND
    if any(
        word in text
        for word in ("access", "permission", "unauthorized", "forbidden", "authentication", "credentials")
    ):
        return ErrorCode.ACCESS_DENIED
    if ("cursor" in text or "page" in text) and ("invalid" in text or "not valid" in text):
        return ErrorCode.INVALID_CURSOR
    if any(word in text for word in ("invalid", "validation", "required", "bad request")):
        return ErrorCode.VALIDATION_ERROR
    if any(
        word in text
        for word in ("network error", "connection refused", "name or service not known", "timed out")
    ):
        return ErrorCode.NETWORK_ERROR
    return None


def _vendor_body(error: BaseException) -> Optional[Dict[str, Any]]:
    """Return the parsed vendor JSON carried by an error, if any."""
    body = getattr(error, "original_error", None)
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            return None
    return body if isinstance(body, dict) else None


def _classify_vendor_body(body: Dict[str, Any]) -> Optional[ErrorCode]:
    """Recognise the vendor error shapes Bitbucket returns."""
    # {"error": {"message": "...", "detail": "..."}}
    nested = body.get("error")
    if isinstance(nested, dict):
        text = f"{nested.get('message', '')} {nested.get('detail', '')}"
        code = _text_to_code(text)
        if code:
            return code

    # {"type": "error", "status": 404, ...}
    if body.get("type") == "error" and isinstance(body.get("status"), int):
        code = _status_to_code(body["status"])
        if code:
            return code

    # {"errors": [{"status": 400, "title": "..."}]}
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        code = _status_to_code(first.get("status")) if isinstance(first.get("status"), int) else None
        if code:
            return code
        code = _text_to_code(str(first.get("title") or first.get("message") or ""))
        if code:
            return code

    # {"message": "..."}
    if isinstance(body.get("message"), str):
        return _text_to_code(body["message"])
    return None


def classify(error: BaseException, context: Optional[ErrorContext] = None) -> ErrorClassification:
    """
    Detect the error code and HTTP status for any failure.

    Never raises; unknown failures map to UNEXPECTED_ERROR.

    Args:
        error: The exception to analyse
        context: Optional context for debug logging

    Returns:
        ErrorClassification with code and http_status
    """
    logger.debug("Classifying %r (context=%s)", error, context)
    status = getattr(error, "status_code", None)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code

    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return ErrorClassification(ErrorCode.NETWORK_ERROR, 500)

    # Explicit classification carried by our own error types
    if isinstance(error, BitbucketError) and error.code is not ErrorCode.UNEXPECTED_ERROR:
        code = error.code
        return ErrorClassification(code, status or DEFAULT_STATUS[code])

    # 429 wins over whatever the body says
    if status == 429:
        return ErrorClassification(ErrorCode.RATE_LIMIT_ERROR, 429)

    body = _vendor_body(error)
    if body:
        code = _classify_vendor_body(body)
        if code:
            return ErrorClassification(code, status or DEFAULT_STATUS[code])

    code = _status_to_code(status) or _text_to_code(str(error))
    if code:
        return ErrorClassification(code, status or DEFAULT_STATUS[code])

    return ErrorClassification(ErrorCode.UNEXPECTED_ERROR, status or 500)


def user_friendly_message(
    code: ErrorCode,
    context: Optional[ErrorContext] = None,
    original_message: Optional[str] = None,
) -> str:
    """Create a user-facing message for a classified error."""
    context = context or ErrorContext()
    entity = context.entity_type or "Resource"
    if context.entity_id:
        entity = f"{entity} {context.entity_id}"
    operation = context.operation or "processing"

    if code is ErrorCode.NOT_FOUND:
        message = (
            f"{entity} not found. Verify the workspace and repository slugs "
            f"are spelled correctly and that you have access."
        )
    elif code is ErrorCode.ACCESS_DENIED:
        message = (
            f"Access denied for {entity.lower()}. Check that your Bitbucket "
            f"app password or API token is valid and has sufficient privileges."
        )
    elif code is ErrorCode.INVALID_CURSOR:
        message = (
            "Invalid pagination cursor. Bitbucket search uses page numbers; "
            "use the exact cursor returned with previous results."
        )
    elif code is ErrorCode.VALIDATION_ERROR:
        message = original_message or f"Invalid data provided for {operation} {entity.lower()}."
    elif code is ErrorCode.NETWORK_ERROR:
        message = f"Network error while {operation} {entity.lower()}. Check your connection and try again."
    elif code is ErrorCode.RATE_LIMIT_ERROR:
        message = "Bitbucket API rate limit exceeded. Wait a moment and try again."
    else:
        message = f"An unexpected error occurred while {operation} {entity.lower()}."

    if original_message and code not in (
        ErrorCode.NOT_FOUND,
        ErrorCode.ACCESS_DENIED,
        ErrorCode.VALIDATION_ERROR,
    ):
        message += f" Error details: {original_message}"
    return message


def format_error_for_tool(error: BaseException) -> Dict[str, Any]:
    """Format any error as an MCP tool response with classification metadata."""
    classification = classify(error)
    logger.error("%s error: %s", classification.code.value, error)
    return {
        "content": f"Error: {error}",
        "metadata": {
            "errorType": classification.code.value,
            "statusCode": classification.http_status,
        },
    }
