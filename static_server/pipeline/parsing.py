"""Request header and request line parsing."""

import logging
from http import HTTPStatus
from typing import Optional

from static_server.bootstrap.config import (
    ALLOWED_METHODS,
    DEFAULT_DOCUMENT_PATH,
    SUPPORTED_PROTOCOL,
)
from static_server.domain.connection_id import ConnectionLoggerAdapter
from static_server.domain.http_types import ParsedHeaders, ResolvedRequest

PARSE_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("static_server.pipeline.parsing"), {}
)

LINE_DELIMITER = "\r\n"

# Header name -> ParsedHeaders attribute. Names match case-sensitively.
RECOGNIZED_HEADERS = {
    "Host": "host",
    "User-Agent": "user_agent",
}


class ServeFileError(Exception):
    """Base class for requests the server refuses to serve."""

    status = HTTPStatus.BAD_REQUEST


class HeaderMalformed(ServeFileError):
    """Header block has no request line or a header line lacks a colon."""


class NoPath(ServeFileError):
    """Request line carries no request target."""


class MethodNotSupported(ServeFileError):
    """Request method is not GET."""

    status = HTTPStatus.METHOD_NOT_ALLOWED


class ProtoNotSupported(ServeFileError):
    """Protocol version is not HTTP/1.1."""

    status = HTTPStatus.HTTP_VERSION_NOT_SUPPORTED


class RequestHeaderTooLarge(ServeFileError):
    """Header buffer filled up before the end-of-headers terminator arrived."""

    status = HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE


def _tokenize(text: str, delimiter: str) -> list[str]:
    """Split on ``delimiter`` dropping empty fields."""
    return [token for token in text.split(delimiter) if token]


def parse_headers(raw: bytes) -> ParsedHeaders:
    """Extract the request line and the Host and User-Agent values."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HeaderMalformed("Header block is not valid UTF-8") from exc

    lines = _tokenize(text, LINE_DELIMITER)
    if not lines:
        raise HeaderMalformed("Missing request line")

    headers = ParsedHeaders(request_line=lines[0])
    for line in lines[1:]:
        name, separator, value = line.partition(":")
        if not separator:
            raise HeaderMalformed(f"Header line without separator: {line!r}")
        attribute = RECOGNIZED_HEADERS.get(name)
        if attribute is None:
            continue
        setattr(headers, attribute, value.lstrip(" "))
    return headers


def parse_path(
    request_line: str, default_document: str = DEFAULT_DOCUMENT_PATH
) -> ResolvedRequest:
    """Validate the request line and return the requested path.

    Fields are checked in order: method, path, protocol version. A bare ``/``
    is replaced by ``default_document``.
    """
    tokens = _tokenize(request_line, " ")
    method: Optional[str] = tokens[0] if tokens else None
    path: Optional[str] = tokens[1] if len(tokens) > 1 else None
    version: Optional[str] = tokens[2] if len(tokens) > 2 else None

    if method is None:
        raise HeaderMalformed("Empty request line")
    if method not in ALLOWED_METHODS:
        raise MethodNotSupported(method)
    if not path:
        raise NoPath(request_line)
    if version is None:
        raise HeaderMalformed(f"Request line without protocol: {request_line!r}")
    if version != SUPPORTED_PROTOCOL:
        raise ProtoNotSupported(version)

    if path == "/":
        path = default_document

    PARSE_LOGGER.debug(
        "Request line parsed",
        extra={
            "event": "request_line_parsed",
            "method": method,
            "path": path,
            "version": version,
        },
    )
    return ResolvedRequest(method, path, version)
