"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ParsedHeaders:
    """Request line plus the whitelisted header values of one request."""

    request_line: str
    host: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class ResolvedRequest:
    """Validated request line fields."""

    method: str
    path: str
    version: str


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client."""

    status_line: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def status_code(self) -> int:
        """Numeric status parsed from the status line."""
        return int(self.status_line.split(" ", 2)[1])
