"""Map request paths onto the served root without ever leaving it."""

from pathlib import Path
from urllib.parse import unquote

from config import ServerConfig


class PathRejectedError(ValueError):
    """Raised when a request path cannot be resolved inside the served root."""


def is_within_root(candidate: Path, root: Path) -> bool:
    try:
        candidate.relative_to(root)
    except ValueError:
        return False
    return True


def resolve_request_path(request_path: str, config: ServerConfig) -> Path:
    """Resolve a URL path to a canonical filesystem path under the root.

    The empty path is replaced by the first index file present directly under
    the root, if any. Symlinks are followed before the containment check, so a
    link pointing outside the root is rejected like a ``..`` escape.
    """
    try:
        decoded_path = unquote(request_path, errors="strict")
    except UnicodeDecodeError as exc:
        raise PathRejectedError("Request path is not valid UTF-8") from exc
    if "\x00" in decoded_path:
        raise PathRejectedError("Request path contains a NUL byte")

    relative_path = decoded_path.removeprefix("/")
    root = config.root_directory

    if not relative_path:
        for index_name in config.index_file_names:
            if (root / index_name).is_file():
                relative_path = index_name
                break

    try:
        candidate = (root / relative_path).resolve()
    except (OSError, RuntimeError, ValueError) as exc:
        raise PathRejectedError(f"Cannot resolve request path {request_path!r}") from exc

    if not is_within_root(candidate, root):
        raise PathRejectedError(f"Request path {request_path!r} escapes the served root")

    return candidate
