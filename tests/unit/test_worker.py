"""Unit tests for per-connection request handling and error isolation."""

import logging
import socket
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from static_server.bootstrap.config import ServerConfig
from static_server.domain.connection_id import current_connection_id
from static_server.lifecycle.state import ServerLifecycle
from static_server.transport.context import WorkerContext
from static_server.transport.worker import handle_client
from tests.utils.http import FakeSocket, parse_http_response
from tests.utils.site import INDEX_HTML, STYLE_CSS

CLIENT = ("127.0.0.1", 54321)


@pytest.fixture(name="context")
def fixture_context(site_directory: Path) -> WorkerContext:
    """Worker context serving the sample site."""
    return WorkerContext(directory=str(site_directory), config=ServerConfig())


def run_exchange(context: WorkerContext, *chunks: bytes) -> FakeSocket:
    """Feed ``chunks`` to handle_client and return the fake socket."""
    client = FakeSocket(list(chunks))
    handle_client(client, CLIENT, context)
    return client


def test_serves_existing_file(context):
    """A valid GET returns the file with its MIME type."""
    client = run_exchange(context, b"GET /style.css HTTP/1.1\r\nHost: x\r\n\r\n")
    response = parse_http_response(client.sent)
    assert response.status_line == "HTTP/1.1 200 OK "
    assert response.headers["content-type"] == "text/css"
    assert response.headers["content-length"] == str(len(STYLE_CSS))
    assert response.body == STYLE_CSS
    assert client.closed


def test_root_serves_default_document(context):
    """The root path maps to the default document."""
    client = run_exchange(context, b"GET / HTTP/1.1\r\n\r\n")
    response = parse_http_response(client.sent)
    assert response.headers["content-type"] == "text/html"
    assert response.body == INDEX_HTML


def test_custom_index_document(site_directory: Path):
    """The default document can be reconfigured."""
    context = WorkerContext(
        directory=str(site_directory), config=ServerConfig(index_document="style.css")
    )
    client = run_exchange(context, b"GET / HTTP/1.1\r\n\r\n")
    assert parse_http_response(client.sent).body == STYLE_CSS


def test_missing_file_returns_404(context):
    """Missing files get the fixed 404."""
    client = run_exchange(context, b"GET /nope.html HTTP/1.1\r\n\r\n")
    response = parse_http_response(client.sent)
    assert response.status_line == "HTTP/1.1 404 NOT FOUND "
    assert response.body == b"YOU ARE A QUICHE EATER"


@pytest.mark.parametrize(
    ("raw", "status_line"),
    [
        (b"POST /x HTTP/1.1\r\n\r\n", "HTTP/1.1 405 Method Not Allowed "),
        (b"GET /x HTTP/1.0\r\n\r\n", "HTTP/1.1 505 HTTP Version Not Supported "),
        (b"GET /x HTTP/1.1\r\nBadHeaderNoColon\r\n\r\n", "HTTP/1.1 400 Bad Request "),
        (b"GET\r\n\r\n", "HTTP/1.1 400 Bad Request "),
        (b"GET /x\r\n\r\n", "HTTP/1.1 400 Bad Request "),
        (b"GET /../x HTTP/1.1\r\n\r\n", "HTTP/1.1 403 Forbidden "),
        (b"GET /img HTTP/1.1\r\n\r\n", "HTTP/1.1 500 Internal Server Error "),
    ],
)
def test_refused_requests_get_error_responses(context, raw, status_line):
    """Parse and filesystem failures are answered, never raised."""
    client = run_exchange(context, raw)
    response = parse_http_response(client.sent)
    assert response.status_line == status_line
    assert response.headers["connection"] == "close"
    assert response.headers["content-length"] == str(len(response.body))
    assert client.closed


def test_method_not_allowed_includes_allow_header(context):
    """405 responses advertise GET."""
    client = run_exchange(context, b"DELETE /x HTTP/1.1\r\n\r\n")
    assert parse_http_response(client.sent).headers["allow"] == "GET"


def test_oversized_header_block_gets_431(site_directory: Path):
    """Filling the buffer without a terminator is answered with 431."""
    context = WorkerContext(
        directory=str(site_directory), config=ServerConfig(max_header_bytes=32)
    )
    client = run_exchange(context, b"GET /style.css HTTP/1.1\r\nX-Pad: " + b"a" * 64)
    response = parse_http_response(client.sent)
    assert response.status_line == "HTTP/1.1 431 Request Header Fields Too Large "


def test_empty_connection_gets_no_response(context):
    """A client closing without sending anything is ignored."""
    client = run_exchange(context)
    assert client.sent == b""
    assert client.closed


def test_socket_errors_are_logged_not_raised(context, caplog):
    """Read failures close the connection and log connection_error."""
    caplog.set_level(logging.ERROR)

    class BrokenSocket(FakeSocket):
        def recv(self, size):
            raise ConnectionResetError("reset")

    client = BrokenSocket([])
    handle_client(client, CLIENT, context)

    assert client.sent == b""
    assert client.closed
    record = next(r for r in caplog.records if getattr(r, "event", None))
    assert record.event == "connection_error"
    assert record.error_type == "ConnectionResetError"
    assert record.client == "127.0.0.1:54321"


def test_unexpected_errors_are_contained(context, caplog):
    """Bugs in the pipeline do not escape handle_client."""
    caplog.set_level(logging.ERROR)
    with patch(
        "static_server.transport.worker.serve_file", side_effect=RuntimeError("boom")
    ):
        client = run_exchange(context, b"GET /style.css HTTP/1.1\r\n\r\n")

    assert client.closed
    assert any(getattr(r, "event", None) == "worker_error" for r in caplog.records)


def test_draining_server_answers_503(context):
    """Connections accepted during shutdown are turned away."""
    lifecycle = ServerLifecycle()
    lifecycle.begin_draining()
    context.lifecycle = lifecycle
    client = run_exchange(context, b"GET /style.css HTTP/1.1\r\n\r\n")
    response = parse_http_response(client.sent)
    assert response.status_line == "HTTP/1.1 503 Service Unavailable "
    assert response.body == b"draining"


def test_worker_never_touches_worker_tracking(context):
    """Only the accept loop tracks threads; handlers just read the flag."""
    lifecycle = MagicMock(spec=ServerLifecycle)
    lifecycle.is_draining.return_value = False
    context.lifecycle = lifecycle
    run_exchange(context, b"GET /style.css HTTP/1.1\r\n\r\n")
    lifecycle.is_draining.assert_called_once()
    lifecycle.track_worker.assert_not_called()


def test_oversized_request_is_read_off_before_close(site_directory: Path):
    """Bytes still in flight after a 431 are consumed so the reply survives."""
    context = WorkerContext(
        directory=str(site_directory), config=ServerConfig(max_header_bytes=32)
    )
    client = run_exchange(
        context,
        b"GET /style.css HTTP/1.1\r\nX-Pad: " + b"a" * 64,
        b"b" * 4096,
        b"c" * 4096,
    )
    response = parse_http_response(client.sent)
    assert response.status_line == "HTTP/1.1 431 Request Header Fields Too Large "
    assert client.unread == 0
    assert socket.SHUT_WR in client.shutdowns
    assert client.closed


@pytest.mark.parametrize(
    "raw",
    [b"POST /upload HTTP/1.1\r\n\r\n", b"GET /x HTTP/1.0\r\n\r\n"],
)
def test_refused_request_body_is_read_off(context, raw):
    """A body following a refused request does not reset the connection."""
    client = run_exchange(context, raw, b"payload" * 100)
    assert client.sent.startswith(b"HTTP/1.1 ")
    assert client.unread == 0


def test_served_file_does_not_linger(context):
    """Successful exchanges close without reading further."""
    client = run_exchange(
        context, b"GET /style.css HTTP/1.1\r\n\r\n", b"unexpected trailing bytes"
    )
    assert parse_http_response(client.sent).status_line == "HTTP/1.1 200 OK "
    assert client.unread == 1


def test_socket_timeout_applied(site_directory: Path):
    """The configured client timeout is set before reading."""
    context = WorkerContext(
        directory=str(site_directory), config=ServerConfig(socket_timeout=7)
    )
    client = run_exchange(context, b"GET /style.css HTTP/1.1\r\n\r\n")
    assert client.timeout == 7.0


def test_worker_logs_share_connection_id(context, caplog):
    """All records of one exchange carry the same connection id."""
    logging.getLogger("static_server").setLevel(logging.DEBUG)
    caplog.set_level(logging.DEBUG)

    run_exchange(context, b"GET /style.css HTTP/1.1\r\nUser-Agent: pytest\r\n\r\n")

    records = [r for r in caplog.records if getattr(r, "event", None)]
    events = [r.event for r in records]
    assert "request_received" in events
    assert "request_line_parsed" in events
    assert "file_read_complete" in events
    assert "request_complete" in events
    assert "socket_closed" in events
    ids = {r.connection_id for r in records}
    assert len(ids) == 1
    assert ids != {"-"}
    received = next(r for r in records if r.event == "request_received")
    assert received.user_agent == "pytest"
    assert current_connection_id() == "-"
