"""Pure HTTP response builders.

Every response closes the connection, so ``Connection: close`` is always the
first header.
"""

from http import HTTPStatus

from static_server.domain.http_types import HttpResponse

NOT_FOUND_CONTENT_TYPE = "text/html; charset=utf8"
# Content-Length must stay the body length (22), not the 33 once advertised.
NOT_FOUND_BODY = b"YOU ARE A QUICHE EATER"
ERROR_CONTENT_TYPE = "text/plain; charset=utf8"


def status_line(status: HTTPStatus, reason: str | None = None) -> str:
    """Format a status line; the trailing space is part of the wire format."""
    return f"HTTP/1.1 {status.value} {reason or status.phrase} "


def _base_headers(content_type: str, body: bytes) -> dict[str, str]:
    return {
        "Connection": "close",
        "Content-Type": content_type,
        "Content-Length": str(len(body)),
    }


def file_response(content: bytes, content_type: str) -> HttpResponse:
    """Return a 200 response carrying the file bytes verbatim."""
    return HttpResponse(
        status_line(HTTPStatus.OK), _base_headers(content_type, content), content
    )


def not_found_response() -> HttpResponse:
    """Return the fixed 404 response, identical for every missing path."""
    return HttpResponse(
        status_line(HTTPStatus.NOT_FOUND, "NOT FOUND"),
        _base_headers(NOT_FOUND_CONTENT_TYPE, NOT_FOUND_BODY),
        NOT_FOUND_BODY,
    )


def error_response(status: HTTPStatus, message: str | None = None) -> HttpResponse:
    """Return a short plain-text error response for ``status``."""
    body = (message or status.phrase).encode()
    return HttpResponse(
        status_line(status), _base_headers(ERROR_CONTENT_TYPE, body), body
    )


def bad_request_response() -> HttpResponse:
    """Produce a 400 response for malformed header blocks."""
    return error_response(HTTPStatus.BAD_REQUEST)


def forbidden_response() -> HttpResponse:
    """Produce a 403 response for paths outside the served directory."""
    return error_response(HTTPStatus.FORBIDDEN)


def method_not_allowed_response(allowed_methods) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED)
    response.headers["Allow"] = ", ".join(sorted(allowed_methods))
    return response


def header_too_large_response() -> HttpResponse:
    """Produce a 431 response when the header buffer overflows."""
    return error_response(HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE)


def version_not_supported_response() -> HttpResponse:
    """Produce a 505 response for protocol versions other than HTTP/1.1."""
    return error_response(HTTPStatus.HTTP_VERSION_NOT_SUPPORTED)


def internal_error_response() -> HttpResponse:
    """Produce a 500 response when a file exists but cannot be read."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)


def draining_response() -> HttpResponse:
    """Produce a 503 response indicating the server is shutting down."""
    return error_response(HTTPStatus.SERVICE_UNAVAILABLE, "draining")
