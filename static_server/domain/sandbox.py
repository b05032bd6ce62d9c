"""Filesystem sandbox utilities for safe path resolution."""

from pathlib import Path, PurePosixPath


class ForbiddenPath(Exception):
    """Raised when a requested path escapes the served directory."""


def resolve_sandbox_path(directory: str, request_path: str) -> Path:
    """Resolve a request path to a file inside ``directory``."""
    if "\x00" in request_path:
        raise ForbiddenPath(request_path)

    directory_root = Path(directory).resolve()
    relative_part = request_path.lstrip("/")
    if not relative_part:
        raise ForbiddenPath(request_path)

    if ".." in PurePosixPath(relative_part).parts:
        raise ForbiddenPath(request_path)

    target = (directory_root / relative_part).resolve()
    if directory_root not in target.parents:
        raise ForbiddenPath(request_path)

    return target
