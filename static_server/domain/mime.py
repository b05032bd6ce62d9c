"""Extension based Content-Type lookup."""

import posixpath

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES = (
    (".html", "text/html"),
    (".css", "text/css"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".gif", "image/gif"),
)


def get_extension(path: str) -> str:
    """Return the extension of the last path component, dot included.

    Names whose only dot is the leading one (``/.html``) have no extension.
    """
    _, extension = posixpath.splitext(path)
    return extension


def get_mime_from_path(path: str) -> str:
    """Map a request path to its Content-Type using ``MIME_TYPES``."""
    extension = get_extension(path)
    for known_extension, mime_type in MIME_TYPES:
        if extension == known_extension:
            return mime_type
    return DEFAULT_MIME_TYPE
