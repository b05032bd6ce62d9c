"""Main connection acceptance loop."""

import logging
import socket
import threading

from static_server.bootstrap.socket_factory import create_server_socket
from static_server.domain.connection_id import ConnectionLoggerAdapter
from static_server.lifecycle.state import ServerLifecycle
from static_server.transport.context import WorkerContext
from static_server.transport.worker import handle_client

ACCEPT_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("static_server.transport.accept"), {}
)


def _dispatch(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Handle the connection inline or on a dedicated worker thread."""
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )

    if not context.config.threaded:
        handle_client(client_socket, client_address, context)
        return

    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, context),
        daemon=False,
    )
    thread.start()
    if context.lifecycle is not None:
        context.lifecycle.track_worker(thread)


def serve_forever(server_socket: socket.socket, context: WorkerContext) -> None:
    """Accept connections until shutdown is requested or accept fails."""
    lifecycle = context.lifecycle or ServerLifecycle()
    while not lifecycle.is_draining():
        try:
            client_socket, client_address = server_socket.accept()
        except socket.timeout:
            continue
        except OSError as error:
            if lifecycle.is_draining():
                break
            ACCEPT_LOGGER.error(
                "Socket accept failed",
                extra={"event": "accept_error", "error_type": type(error).__name__},
            )
            break

        _dispatch(client_socket, client_address, context)


def run_server(
    host: str, port: int, context: WorkerContext, lifecycle: ServerLifecycle
) -> None:
    """Create the listening socket and serve until shutdown."""
    server_socket = create_server_socket(host, port)
    context.lifecycle = lifecycle

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "port": port,
            "directory": context.directory,
            "threaded": context.config.threaded,
        },
    )

    try:
        serve_forever(server_socket, context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "grace_seconds": context.config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(context.config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info(
            "Server shutdown complete", extra={"event": "server_stopped"}
        )
