"""Static file HTTP server entry point."""

import logging
import signal
import sys

from static_server.bootstrap.config import config_from_args, parse_cli_args
from static_server.bootstrap.logging_setup import configure_logging
from static_server.domain.connection_id import ConnectionLoggerAdapter
from static_server.lifecycle.state import ServerLifecycle
from static_server.transport.accept_loop import run_server
from static_server.transport.context import WorkerContext

SERVER_LOGGER = ConnectionLoggerAdapter(logging.getLogger("static_server.server"), {})


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, configure logging and serve until signalled."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(
        args.log_level, args.log_destination, use_json=args.log_format == "json"
    )

    config = config_from_args(args)
    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "signal_received", "signal": signum},
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting static file server",
        extra={
            "event": "server_starting",
            "port": args.port,
            "directory": args.directory,
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
            "threaded": config.threaded,
        },
    )
    context = WorkerContext(directory=args.directory, config=config)
    try:
        run_server(args.host, args.port, context, lifecycle)
    except OSError:
        sys.exit(1)


if __name__ == "__main__":
    main()
