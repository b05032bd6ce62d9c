"""Connection handling: one request/response exchange per accepted socket."""

import logging
import socket
import time
from http import HTTPStatus
from typing import Optional

from static_server.bootstrap.config import ALLOWED_METHODS
from static_server.domain.connection_id import ConnectionLoggerAdapter, connection_scope
from static_server.domain.http_types import HttpResponse
from static_server.domain.response_builders import (
    bad_request_response,
    draining_response,
    forbidden_response,
    header_too_large_response,
    internal_error_response,
    method_not_allowed_response,
    version_not_supported_response,
)
from static_server.domain.sandbox import ForbiddenPath
from static_server.handlers.file_handler import serve_file
from static_server.pipeline.io import (
    discard_unread_input,
    read_request_block,
    send_response,
)
from static_server.pipeline.parsing import (
    MethodNotSupported,
    ProtoNotSupported,
    RequestHeaderTooLarge,
    ServeFileError,
    parse_headers,
    parse_path,
)
from static_server.transport.context import WorkerContext

WORKER_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("static_server.transport.worker"), {}
)

# Refusals may be sent before the client finished writing its request.
LINGER_STATUSES = frozenset(
    {
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.METHOD_NOT_ALLOWED,
        HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
        HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
    }
)



def _rejection_response(error: ServeFileError) -> HttpResponse:
    """Map a refused request onto its HTTP error response."""
    if isinstance(error, MethodNotSupported):
        return method_not_allowed_response(ALLOWED_METHODS)
    if isinstance(error, ProtoNotSupported):
        return version_not_supported_response()
    if isinstance(error, RequestHeaderTooLarge):
        return header_too_large_response()
    return bad_request_response()


def _log_rejection(error: ServeFileError, client_addr_str: str) -> None:
    WORKER_LOGGER.warning(
        "Request rejected",
        extra={
            "event": "request_rejected",
            "client": client_addr_str,
            "error_type": type(error).__name__,
            "status_code": int(error.status),
        },
    )


def _process_connection(
    client_socket: socket.socket, client_addr_str: str, context: WorkerContext
) -> Optional[HttpResponse]:
    """Read, parse and answer one request. None means nothing to answer."""
    config = context.config
    try:
        raw_request = read_request_block(client_socket, config.max_header_bytes)
    except RequestHeaderTooLarge as error:
        _log_rejection(error, client_addr_str)
        return _rejection_response(error)

    if not raw_request:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client closed without sending a request",
                extra={"event": "client_disconnected", "client": client_addr_str},
            )
        return None

    try:
        headers = parse_headers(raw_request)
        request = parse_path(headers.request_line, config.default_document_path)
    except ServeFileError as error:
        _log_rejection(error, client_addr_str)
        return _rejection_response(error)

    WORKER_LOGGER.info(
        "Request received",
        extra={
            "event": "request_received",
            "client": client_addr_str,
            "method": request.method,
            "path": request.path,
            "host": headers.host or "-",
            "user_agent": headers.user_agent or "-",
            "bytes_in": len(raw_request),
        },
    )

    try:
        return serve_file(request, context.directory)
    except ForbiddenPath:
        WORKER_LOGGER.warning(
            "Forbidden path access blocked",
            extra={
                "event": "forbidden_path",
                "client": client_addr_str,
                "path": request.path,
            },
        )
        return forbidden_response()
    except OSError as error:
        WORKER_LOGGER.error(
            "File could not be read",
            extra={
                "event": "file_read_failed",
                "path": request.path,
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return internal_error_response()



def _close_connection(
    client_socket: socket.socket, client_addr_str: str, started: float
) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()

    WORKER_LOGGER.debug(
        "Socket closed",
        extra={
            "event": "socket_closed",
            "client": client_addr_str,
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )


def _exchange(
    client_socket: socket.socket, client_addr_str: str, context: WorkerContext
) -> None:
    lifecycle = context.lifecycle
    client_socket.settimeout(context.config.client_timeout)
    if lifecycle is not None and lifecycle.is_draining():
        send_response(client_socket, draining_response())
        return

    started = time.monotonic()
    response = _process_connection(client_socket, client_addr_str, context)
    if response is None:
        return
    send_response(client_socket, response)
    WORKER_LOGGER.info(
        "Request complete",
        extra={
            "event": "request_complete",
            "client": client_addr_str,
            "status_code": response.status_code,
            "bytes_out": len(response.body),
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )
    if response.status_code in LINGER_STATUSES:
        discard_unread_input(client_socket)


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Serve a single request on ``client_socket`` and close it.

    Every failure is contained here so the accept loop keeps running.
    """
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    started = time.monotonic()
    with connection_scope():
        try:
            _exchange(client_socket, client_addr_str, context)
        except OSError as error:
            WORKER_LOGGER.error(
                "Error handling client connection",
                extra={
                    "event": "connection_error",
                    "client": client_addr_str,
                    "error_type": type(error).__name__,
                },
            )
        except Exception as error:  # pylint: disable=broad-except
            WORKER_LOGGER.error(
                "Unexpected error in worker",
                extra={
                    "event": "worker_error",
                    "client": client_addr_str,
                    "error_type": type(error).__name__,
                },
                exc_info=True,
            )
        finally:
            _close_connection(client_socket, client_addr_str, started)
