"""Unit tests for request-head reading and streamed response writing."""

import socket
from pathlib import Path

import pytest

from config import MAX_HEADER_BYTES
from response import HTTPResponse, as_head_response
from socket_handler import (
    HeaderTooLargeError,
    MalformedRequestError,
    ResponseWriteError,
    SocketTimeoutError,
    read_http_request_head,
    write_http_response_message,
)


class ScriptedSocket:
    def __init__(self, chunks: list[bytes | Exception]) -> None:
        self._chunks = list(chunks)
        self.sent = bytearray()
        self.send_calls = 0

    def recv(self, _size: int) -> bytes:
        if not self._chunks:
            return b""
        chunk = self._chunks.pop(0)
        if isinstance(chunk, Exception):
            raise chunk
        return chunk

    def sendall(self, data: bytes) -> None:
        self.send_calls += 1
        self.sent.extend(data)


class BrokenPipeSocket(ScriptedSocket):
    def __init__(self, fail_on_call: int) -> None:
        super().__init__([])
        self._fail_on_call = fail_on_call

    def sendall(self, data: bytes) -> None:
        if self.send_calls + 1 >= self._fail_on_call:
            raise BrokenPipeError("peer closed")
        super().sendall(data)


def test_read_head_across_multiple_chunks() -> None:
    sock = ScriptedSocket([b"GET / HTTP/1.1\r\nHo", b"st: x\r\n", b"\r\nignored-body"])

    head = read_http_request_head(sock)

    assert head == b"GET / HTTP/1.1\r\nHost: x\r\n\r\n"


def test_read_head_returns_empty_when_peer_sends_nothing() -> None:
    assert read_http_request_head(ScriptedSocket([])) == b""


def test_read_head_incomplete_request_is_malformed() -> None:
    with pytest.raises(MalformedRequestError):
        read_http_request_head(ScriptedSocket([b"GET / HTTP/1.1\r\n"]))


def test_read_head_timeout_is_reported() -> None:
    with pytest.raises(SocketTimeoutError):
        read_http_request_head(ScriptedSocket([socket.timeout("slow")]))


def test_read_head_too_large_is_rejected() -> None:
    oversized = b"GET / HTTP/1.1\r\nX-Fill: " + b"a" * MAX_HEADER_BYTES
    with pytest.raises(HeaderTooLargeError):
        read_http_request_head(ScriptedSocket([oversized]))


def test_file_body_is_streamed_in_bounded_chunks(tmp_path: Path) -> None:
    payload = bytes(range(256)) * 200
    target = tmp_path / "blob.bin"
    target.write_bytes(payload)
    sock = ScriptedSocket([])

    bytes_sent = write_http_response_message(
        sock,
        HTTPResponse(status_code=200, file_path=target),
        write_chunk_size=1024,
    )

    head, body = bytes(sock.sent).split(b"\r\n\r\n", 1)
    assert body == payload
    assert f"Content-Length: {len(payload)}".encode() in head
    assert bytes_sent == len(sock.sent)
    # one send for the head plus one per buffer fill
    assert sock.send_calls == 1 + len(payload) // 1024 + (1 if len(payload) % 1024 else 0)


def test_head_file_response_sends_length_without_body(tmp_path: Path) -> None:
    target = tmp_path / "blob.bin"
    target.write_bytes(b"12345")
    sock = ScriptedSocket([])

    write_http_response_message(
        sock, as_head_response(HTTPResponse(status_code=200, file_path=target))
    )

    assert bytes(sock.sent).endswith(b"\r\n\r\n")
    assert b"Content-Length: 5\r\n" in bytes(sock.sent)


def test_unopenable_file_fails_before_headers(tmp_path: Path) -> None:
    sock = ScriptedSocket([])

    with pytest.raises(ResponseWriteError) as exc_info:
        write_http_response_message(
            sock, HTTPResponse(status_code=200, file_path=tmp_path / "vanished.txt")
        )

    assert exc_info.value.headers_sent is False
    assert sock.sent == b""


def test_peer_disconnect_mid_transfer_reports_headers_sent(tmp_path: Path) -> None:
    target = tmp_path / "big.bin"
    target.write_bytes(b"x" * 10_000)
    sock = BrokenPipeSocket(fail_on_call=3)

    with pytest.raises(ResponseWriteError) as exc_info:
        write_http_response_message(
            sock, HTTPResponse(status_code=200, file_path=target), write_chunk_size=1000
        )

    assert exc_info.value.headers_sent is True
    assert exc_info.value.bytes_sent == len(sock.sent)
    assert bytes(sock.sent).startswith(b"HTTP/1.1 200 OK\r\n")


def test_in_memory_body_is_written_whole() -> None:
    sock = ScriptedSocket([])

    write_http_response_message(sock, HTTPResponse(status_code=404))

    assert bytes(sock.sent).startswith(b"HTTP/1.1 404 Not Found\r\n")
    assert b"Content-Length: 0\r\n" in bytes(sock.sent)
