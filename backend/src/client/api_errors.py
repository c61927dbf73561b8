"""
API error parsing for the LinkStack client.

Transport failures, HTTP status errors and malformed responses are translated into
a small set of exceptions that the UI components know how to surface. Parsing
extracts semantic meaning from HTTP errors; each component decides how to show it.
"""
from dataclasses import dataclass
from typing import Any, Literal

import httpx

ErrorCategory = Literal[
    "auth",        # 401 - Invalid or expired token
    "forbidden",   # 403 - Access denied
    "not_found",   # 404 - Resource not found
    "validation",  # 400/422 - Validation error
    "conflict",    # 409 - Duplicate URL
    "internal",    # 5xx or unexpected errors
]

NETWORK_ERROR_MESSAGE = (
    "Could not reach the server. Check your internet connection, "
    "or make sure the dev server is running."
)
DUPLICATE_BOOKMARK_MESSAGE = "This URL is already bookmarked"


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and message."""

    category: ErrorCategory
    message: str
    status_code: int | None = None


class LinkStackError(Exception):
    """Base class for errors surfaced to the user by client components."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(LinkStackError):
    """The request never completed (DNS, connection refused, timeout)."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(message)


class DuplicateBookmarkError(LinkStackError):
    """The URL is already bookmarked by the current user."""

    def __init__(self, message: str = DUPLICATE_BOOKMARK_MESSAGE) -> None:
        super().__init__(message)


class ApiError(LinkStackError):
    """The API answered with an error status."""

    def __init__(self, parsed: ParsedApiError) -> None:
        self.parsed = parsed
        self.category = parsed.category
        self.status_code = parsed.status_code
        super().__init__(parsed.message)


class MetadataFetchError(ApiError):
    """The metadata function could not fetch or parse the target page."""


def parse_http_error(  # noqa: PLR0911
    e: httpx.HTTPStatusError,
    entity_type: str = "",
) -> ParsedApiError:
    """
    Parse HTTP error into semantic categories.

    Args:
        e: The HTTP status error from httpx
        entity_type: Type of entity (e.g., "bookmark") for error messages

    Returns:
        ParsedApiError with category and message
    """
    status = e.response.status_code

    if status == 401:
        return ParsedApiError("auth", "Invalid or expired token", status)

    if status == 403:
        return ParsedApiError("forbidden", "Access denied", status)

    if status == 404:
        msg = f"{entity_type.title()} not found" if entity_type else "Not found"
        return ParsedApiError("not_found", msg, status)

    if status == 409:
        detail = _safe_get_detail(e)
        if isinstance(detail, dict):
            msg = detail.get("message", DUPLICATE_BOOKMARK_MESSAGE)
        elif isinstance(detail, str) and detail:
            msg = detail
        else:
            msg = DUPLICATE_BOOKMARK_MESSAGE
        return ParsedApiError("conflict", msg, status)

    if status in (400, 422):
        return ParsedApiError("validation", _extract_validation_message(e), status)

    error = _safe_get_error(e)
    return ParsedApiError("internal", error or f"API error {status}", status)


def _safe_json(e: httpx.HTTPStatusError) -> Any:  # noqa: ANN401
    try:
        return e.response.json()
    except ValueError:
        return None


def _safe_get_detail(e: httpx.HTTPStatusError) -> dict[str, Any] | str:
    """Safely extract detail from error response."""
    body = _safe_json(e)
    if isinstance(body, dict):
        return body.get("detail", {})
    # Non-dict JSON body (list, string, etc.) - return empty
    return {}


def _safe_get_error(e: httpx.HTTPStatusError) -> str:
    """Extract the `{"error": ...}` message used by the metadata function."""
    body = _safe_json(e)
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return ""


def _extract_validation_message(e: httpx.HTTPStatusError) -> str:
    """Extract validation error message from 400/422 response."""
    body = _safe_json(e)
    if not isinstance(body, dict):
        return "Validation error"
    if isinstance(body.get("error"), str):
        return body["error"]
    detail = body.get("detail", "Validation error")
    if isinstance(detail, dict):
        return detail.get("message", str(detail))
    if isinstance(detail, list):
        # FastAPI validation errors return a list of error objects
        messages = []
        for err in detail:
            if isinstance(err, dict):
                loc = err.get("loc", ["unknown"])
                field = loc[-1] if loc else "unknown"
                msg = err.get("msg", "invalid")
                messages.append(f"{field}: {msg}")
        return "; ".join(messages) if messages else "Validation error"
    return str(detail)


def translate_error(e: httpx.HTTPError, entity_type: str = "") -> LinkStackError:
    """Map an httpx failure onto the client's error taxonomy."""
    if isinstance(e, httpx.HTTPStatusError):
        parsed = parse_http_error(e, entity_type)
        if parsed.category == "conflict":
            return DuplicateBookmarkError(parsed.message)
        return ApiError(parsed)
    if isinstance(e, httpx.TransportError):
        return NetworkError()
    return LinkStackError(str(e) or "Unexpected API error")
