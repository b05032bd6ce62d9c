"""File serving handlers."""

import logging

from static_server.domain.connection_id import ConnectionLoggerAdapter
from static_server.domain.http_types import HttpResponse, ResolvedRequest
from static_server.domain.mime import get_mime_from_path
from static_server.domain.response_builders import file_response, not_found_response
from static_server.domain.sandbox import resolve_sandbox_path

FILE_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("static_server.handlers.file"), {}
)


def local_file_get_content(directory: str, path: str) -> bytes:
    """Read the whole file behind a request path.

    Raises ForbiddenPath for paths escaping ``directory`` and lets
    FileNotFoundError and other OSError subclasses propagate.
    """
    resolved_path = resolve_sandbox_path(directory, path)
    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File read started",
            extra={"event": "file_read_started", "path": resolved_path.as_posix()},
        )
    with open(resolved_path, "rb") as file_handle:
        return file_handle.read()


def serve_file(request: ResolvedRequest, directory: str) -> HttpResponse:
    """Build a 200 response for an existing file or the fixed 404."""
    try:
        content = local_file_get_content(directory, request.path)
    except FileNotFoundError:
        FILE_LOGGER.info(
            "File not found",
            extra={"event": "file_not_found", "path": request.path},
        )
        return not_found_response()

    content_type = get_mime_from_path(request.path)
    FILE_LOGGER.info(
        "File read operation complete",
        extra={
            "event": "file_read_complete",
            "path": request.path,
            "content_type": content_type,
            "bytes_out": len(content),
        },
    )
    return file_response(content, content_type)
