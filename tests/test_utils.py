"""Tests for content-type lookup and free-port discovery."""

import socket
from pathlib import Path

import pytest

from mime_types import CONTENT_ENCODINGS, MIME_TYPES
from utils import find_open_port, get_content_encoding, get_content_type


def test_content_type_lookup_ignores_extension_case() -> None:
    assert get_content_type(Path("photo.JPG")) == "image/jpeg"
    assert get_content_type(Path("dir/app.Wasm")) == "application/wasm"
    assert get_content_type(Path("archive.tar.gz")) == "application/octet-stream"


def test_content_encoding_only_for_mapped_extensions() -> None:
    assert get_content_encoding(Path("archive.tar.GZ")) == "gzip"
    assert get_content_encoding(Path("page.html")) is None


def test_tables_are_read_only() -> None:
    with pytest.raises(TypeError):
        MIME_TYPES[".new"] = "text/new"  # type: ignore[index]
    with pytest.raises(TypeError):
        CONTENT_ENCODINGS[".br"] = "br"  # type: ignore[index]


def test_mime_table_keys_are_lowercase_with_dot() -> None:
    assert len(MIME_TYPES) == 65
    assert all(key.startswith(".") and key == key.lower() for key in MIME_TYPES)


def test_find_open_port_skips_bound_port() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        busy_port = busy.getsockname()[1]

        port = find_open_port(busy_port, attempts=50)

    assert port != busy_port
    assert busy_port < port < busy_port + 50


def test_find_open_port_raises_when_range_is_exhausted() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        busy_port = busy.getsockname()[1]

        with pytest.raises(OSError):
            find_open_port(busy_port, attempts=1)
