"""Low-level socket read/write utilities."""

from __future__ import annotations

import os
import socket

from config import BUFFER_SIZE, MAX_HEADER_BYTES, READ_CHUNK_SIZE, WRITE_CHUNK_SIZE
from response import HTTPResponse, prepare_head


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request head."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out while sending request bytes."""


class ResponseWriteError(Exception):
    """Raised when a response could not be written completely.

    ``headers_sent`` tells the caller whether the status line already went out,
    in which case nothing else can be reported to the client.
    """

    def __init__(self, message: str, *, headers_sent: bool, bytes_sent: int = 0) -> None:
        super().__init__(message)
        self.headers_sent = headers_sent
        self.bytes_sent = bytes_sent


def read_http_request_head(client_socket: socket.socket) -> bytes:
    """Read bytes up to and including the blank line that ends the head.

    Returns ``b""`` when the peer closes the connection without sending
    anything.
    """
    buffer = bytearray()
    while True:
        header_end_index = buffer.find(b"\r\n\r\n")
        if header_end_index != -1:
            if header_end_index + 4 > MAX_HEADER_BYTES:
                raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
            return bytes(buffer[: header_end_index + 4])
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")

        try:
            chunk = client_socket.recv(max(BUFFER_SIZE, READ_CHUNK_SIZE))
        except socket.timeout as exc:
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc

        if not chunk:
            if not buffer:
                return b""
            raise MalformedRequestError("Connection closed before request head completed")

        buffer.extend(chunk)


def discard_pending_input(client_socket: socket.socket) -> None:
    """Drop request bytes already received so closing does not reset the peer."""
    client_socket.setblocking(False)
    try:
        while client_socket.recv(READ_CHUNK_SIZE):
            pass
    except (BlockingIOError, InterruptedError):
        pass
    finally:
        client_socket.setblocking(True)


def write_http_response_message(
    client_socket: socket.socket,
    response: HTTPResponse,
    *,
    write_chunk_size: int = WRITE_CHUNK_SIZE,
) -> int:
    """Write an HTTPResponse, streaming file bodies through a reused buffer.

    Returns the number of bytes written. File failures are reported as
    ``ResponseWriteError``; socket failures on in-memory bodies propagate as
    ``OSError``.
    """
    if response.file_path is None:
        payload = response.to_bytes()
        client_socket.sendall(payload)
        return len(payload)

    try:
        file_obj = response.file_path.open("rb")
    except OSError as exc:
        raise ResponseWriteError(
            f"Cannot open {response.file_path}: {exc}", headers_sent=False
        ) from exc

    bytes_sent = 0
    headers_sent = False
    with file_obj:
        try:
            file_size = os.fstat(file_obj.fileno()).st_size
            head = prepare_head(response, content_length=file_size)
            client_socket.sendall(head)
            headers_sent = True
            bytes_sent += len(head)
            if response.omit_body:
                return bytes_sent

            buffer = bytearray(write_chunk_size)
            view = memoryview(buffer)
            while True:
                read_count = file_obj.readinto(buffer)
                if not read_count:
                    break
                client_socket.sendall(view[:read_count])
                bytes_sent += read_count
        except OSError as exc:
            raise ResponseWriteError(
                f"Transfer of {response.file_path} failed: {exc}",
                headers_sent=headers_sent,
                bytes_sent=bytes_sent,
            ) from exc
    return bytes_sent
