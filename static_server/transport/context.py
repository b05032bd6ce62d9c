"""Context object shared by every connection handler."""

from dataclasses import dataclass, field
from typing import Optional

from static_server.bootstrap.config import ServerConfig
from static_server.lifecycle.state import ServerLifecycle


@dataclass
class WorkerContext:
    """Read-only dependencies handed to each connection handler."""

    directory: str = "."
    config: ServerConfig = field(default_factory=ServerConfig)
    lifecycle: Optional[ServerLifecycle] = None
