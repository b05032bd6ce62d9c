"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 7777
DEFAULT_MAX_HEADER_BYTES = _env_int("STATIC_SERVER_MAX_HEADER_BYTES", 4096)
DEFAULT_DOCUMENT_PATH = "/xd.html"
DEFAULT_INDEX_DOCUMENT = _env_str(
    "STATIC_SERVER_INDEX_DOCUMENT", DEFAULT_DOCUMENT_PATH.lstrip("/")
)
DEFAULT_SOCKET_TIMEOUT = _env_int("STATIC_SERVER_SOCKET_TIMEOUT", 0)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("STATIC_SERVER_SHUTDOWN_GRACE_SECONDS", 5)
DEFAULT_THREADED = _env_bool("STATIC_SERVER_THREADED", False)

HEADER_DELIMITER = b"\r\n\r\n"
ALLOWED_METHODS = {"GET"}
SUPPORTED_PROTOCOL = "HTTP/1.1"


@dataclass
class ServerConfig:
    """Runtime settings shared by the accept loop and its workers."""

    max_header_bytes: int = DEFAULT_MAX_HEADER_BYTES
    index_document: str = DEFAULT_INDEX_DOCUMENT
    socket_timeout: int = DEFAULT_SOCKET_TIMEOUT
    shutdown_grace_seconds: int = DEFAULT_SHUTDOWN_GRACE_SECONDS
    threaded: bool = DEFAULT_THREADED

    @property
    def default_document_path(self) -> str:
        """Request path substituted for ``/``."""
        return "/" + self.index_document.lstrip("/")

    @property
    def client_timeout(self) -> Optional[float]:
        """Socket timeout for client reads, ``None`` meaning block forever."""
        return float(self.socket_timeout) if self.socket_timeout > 0 else None


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Build a ServerConfig from parsed CLI arguments."""
    return ServerConfig(
        max_header_bytes=args.max_header_bytes,
        index_document=args.index_document,
        socket_timeout=args.socket_timeout,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
        threaded=args.threaded,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Static file HTTP server")
    parser.add_argument("--directory", default=".")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    default_log_level = os.getenv("STATIC_SERVER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("STATIC_SERVER_LOG_DESTINATION", "stdout")
    default_log_format = os.getenv("STATIC_SERVER_LOG_FORMAT", "json").lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_log_format,
        choices=["json", "text"],
        type=str.lower,
    )
    parser.add_argument(
        "--index-document",
        default=DEFAULT_INDEX_DOCUMENT,
        help="File served when the root path is requested",
    )
    parser.add_argument(
        "--max-header-bytes",
        type=_positive_int,
        default=DEFAULT_MAX_HEADER_BYTES,
        help="Capacity of the request header buffer",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Client socket timeout in seconds (0 blocks indefinitely)",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    parser.add_argument(
        "--threaded",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_THREADED,
        help="Handle each connection on its own thread",
    )
    return parser.parse_args(argv)
