"""Configuration constants and the immutable per-server configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

HOST: str = "127.0.0.1"
PORT: int = 8084
PORT_SCAN_ATTEMPTS: int = 999
BUFFER_SIZE: int = 1024
READ_CHUNK_SIZE: int = 4096
WRITE_CHUNK_SIZE: int = 16 * 1024
SOCKET_TIMEOUT_SECS: int = 5
MAX_HEADER_BYTES: int = 16_384
MAX_TARGET_LENGTH: int = 8192
WORKER_COUNT: int = 8
REQUEST_QUEUE_SIZE: int = 64
DRAIN_TIMEOUT_SECS: float = 5.0
LOG_FORMAT: str = "plain"
SERVER_NAME: str = "local-file-server/0.1"
INDEX_FILE_NAMES: tuple[str, ...] = (
    "index.html",
    "index.htm",
    "default.html",
    "default.htm",
)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    root_directory: Path
    port: int = PORT
    host: str = HOST
    index_file_names: tuple[str, ...] = INDEX_FILE_NAMES

    @classmethod
    def for_directory(
        cls,
        path: str | Path,
        *,
        port: int = PORT,
        host: str = HOST,
        index_file_names: tuple[str, ...] = INDEX_FILE_NAMES,
    ) -> "ServerConfig":
        """Build a config whose root is the canonical form of ``path``."""
        root = Path(path).resolve(strict=True)
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")
        return cls(
            root_directory=root,
            port=port,
            host=host,
            index_file_names=tuple(index_file_names),
        )
