"""Utility helpers shared across server modules."""

import socket
from email.utils import formatdate
from pathlib import Path

from config import HOST, PORT_SCAN_ATTEMPTS
from mime_types import CONTENT_ENCODINGS, DEFAULT_CONTENT_TYPE, MIME_TYPES


def get_content_type(file_path: Path) -> str:
    return MIME_TYPES.get(file_path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def get_content_encoding(file_path: Path) -> str | None:
    return CONTENT_ENCODINGS.get(file_path.suffix.lower())


def format_http_date(timestamp: float | None = None) -> str:
    """Format a POSIX timestamp (default: now) as an RFC 1123 GMT date."""
    return formatdate(timeval=timestamp, localtime=False, usegmt=True)


def find_open_port(start_port: int, attempts: int = PORT_SCAN_ATTEMPTS, host: str = HOST) -> int:
    """Return the first port at or after ``start_port`` that can be bound."""
    for port in range(start_port, min(start_port + attempts, 65536)):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            try:
                probe.bind((host, port))
            except OSError:
                continue
            return port
    raise OSError(f"No free port in range {start_port}-{start_port + attempts - 1}")
