"""HTTP input/output over a client socket."""

import logging
import socket
import time

from static_server.bootstrap.config import DEFAULT_MAX_HEADER_BYTES, HEADER_DELIMITER
from static_server.domain.connection_id import ConnectionLoggerAdapter
from static_server.domain.http_types import HttpResponse
from static_server.pipeline.parsing import RequestHeaderTooLarge

IO_LOGGER = ConnectionLoggerAdapter(logging.getLogger("static_server.io"), {})

LINGER_SECONDS = 1.0
LINGER_MAX_BYTES = 64 * 1024
LINGER_CHUNK_BYTES = 4096


def end_of_request_reached(data: bytes) -> bool:
    """Return True when ``data`` contains the end-of-headers terminator."""
    return HEADER_DELIMITER in data


def read_request_block(
    client_socket: socket.socket, capacity: int = DEFAULT_MAX_HEADER_BYTES
) -> bytes:
    """Read from the socket until the header block is complete.

    Stops on the terminator or when the peer closes. An empty result means
    the client sent nothing. Raises RequestHeaderTooLarge when ``capacity``
    bytes arrive without a terminator.
    """
    buffer = bytearray()
    while len(buffer) < capacity:
        chunk = client_socket.recv(capacity - len(buffer))
        if not chunk:
            return bytes(buffer)
        buffer += chunk
        if end_of_request_reached(buffer):
            return bytes(buffer)

    raise RequestHeaderTooLarge(f"No end of headers within {capacity} bytes")


def serialize_response(response: HttpResponse) -> bytes:
    """Render the status line, headers and body as wire bytes."""
    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in response.headers.items())
    header_block = "\r\n".join(header_lines).encode() + HEADER_DELIMITER
    return header_block + response.body


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send the HTTP response over the socket."""
    payload = serialize_response(response)
    client_socket.sendall(payload)
    IO_LOGGER.debug(
        "Sent response",
        extra={
            "event": "response_sent",
            "status_code": response.status_code,
            "bytes_out": len(payload),
        },
    )


def discard_unread_input(
    client_socket: socket.socket,
    timeout: float = LINGER_SECONDS,
    limit: int = LINGER_MAX_BYTES,
) -> int:
    """Half-close, then read and drop what the peer is still sending.

    Closing a socket with unread input makes the kernel send a reset, which
    can destroy a response the client has not read yet. Reading stops at EOF,
    after ``limit`` bytes or once ``timeout`` seconds have passed.
    """
    client_socket.shutdown(socket.SHUT_WR)
    deadline = time.monotonic() + timeout
    discarded = 0
    try:
        while discarded < limit:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            client_socket.settimeout(remaining)
            chunk = client_socket.recv(min(LINGER_CHUNK_BYTES, limit - discarded))
            if not chunk:
                break
            discarded += len(chunk)
    except OSError as error:
        IO_LOGGER.debug(
            "Stopped discarding unread input",
            extra={"event": "linger_stopped", "error_type": type(error).__name__},
        )
    return discarded
