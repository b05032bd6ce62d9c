"""Listening socket creation."""

import logging
import socket

from static_server.domain.connection_id import ConnectionLoggerAdapter

SOCKET_LOGGER = ConnectionLoggerAdapter(logging.getLogger("static_server.socket"), {})

ACCEPT_POLL_SECONDS = 0.5


def create_server_socket(host: str, port: int) -> socket.socket:
    """Bind a listening TCP socket with address reuse enabled.

    The socket polls ``accept`` every ``ACCEPT_POLL_SECONDS`` so the accept
    loop can notice shutdown requests.
    """
    server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server_socket.bind((host, port))
        server_socket.listen()
    except OSError:
        server_socket.close()
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={"event": "bind_failed", "port": port},
        )
        raise
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    return server_socket
