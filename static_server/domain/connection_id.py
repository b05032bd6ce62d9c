"""Connection ids stamped onto every log record of an exchange."""

import contextlib
import contextvars
import logging
import uuid
from typing import Any, Iterator, MutableMapping

LOGGER_PREFIX = "static_server."
NO_CONNECTION = "-"

_current_connection: contextvars.ContextVar[str] = contextvars.ContextVar(
    "connection_id", default=NO_CONNECTION
)


def current_connection_id() -> str:
    return _current_connection.get()


@contextlib.contextmanager
def connection_scope() -> Iterator[str]:
    """Bind a fresh short id for the duration of one connection."""
    connection_id = uuid.uuid4().hex[:12]
    token = _current_connection.set(connection_id)
    try:
        yield connection_id
    finally:
        _current_connection.reset(token)


class ConnectionLoggerAdapter(logging.LoggerAdapter):
    """Adds ``connection_id`` and ``component`` to the caller's extra fields."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        name = self.logger.name
        kwargs["extra"] = {
            **(kwargs.get("extra") or {}),
            "connection_id": _current_connection.get(),
            "component": name.removeprefix(LOGGER_PREFIX),
        }
        return msg, kwargs
