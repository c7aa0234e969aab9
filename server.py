"""Main file server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import threading
import time
import webbrowser

from config import (
    DRAIN_TIMEOUT_SECS,
    HOST,
    LOG_FORMAT,
    PORT,
    REQUEST_QUEUE_SIZE,
    SOCKET_TIMEOUT_SECS,
    WORKER_COUNT,
    ServerConfig,
)
from handlers.file_handlers import serve_path
from metrics import MetricsRegistry
from request import SERVED_METHODS, HTTPRequest, HTTPRequestParseError
from response import HTTPResponse, as_head_response, error_response
from socket_handler import (
    HeaderTooLargeError,
    MalformedRequestError,
    ResponseWriteError,
    SocketTimeoutError,
    discard_pending_input,
    read_http_request_head,
    write_http_response_message,
)
from thread_pool import ThreadPool
from utils import find_open_port

logger = logging.getLogger(__name__)


class FileServer:
    """Serve one directory tree over HTTP, one request per connection."""

    def __init__(
        self,
        config: ServerConfig,
        worker_count: int = WORKER_COUNT,
        request_queue_size: int = REQUEST_QUEUE_SIZE,
        *,
        log_format: str = LOG_FORMAT,
        drain_timeout_secs: float = DRAIN_TIMEOUT_SECS,
    ) -> None:
        self.config = config
        self.host = config.host
        self.port = config.port
        self.worker_count = worker_count
        self.request_queue_size = request_queue_size
        self.log_format = log_format
        self.drain_timeout_secs = drain_timeout_secs

        self._server_socket: socket.socket | None = None
        self._pool: ThreadPool | None = None
        self._running = False
        self._ready = threading.Event()
        self.metrics = MetricsRegistry()

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    def start(self) -> None:
        """Bind the listener and run the accept loop until ``stop`` is called."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
            self._server_socket = server_socket
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(128)
            server_socket.settimeout(0.2)
            self.port = server_socket.getsockname()[1]
            pool = ThreadPool(
                worker_count=self.worker_count,
                queue_size=self.request_queue_size,
                handler=self._handle_client,
            )
            self._pool = pool
            pool.start()

            self._running = True
            self._ready.set()
            logger.info("Serving %s at %s", self.config.root_directory, self.url)
            try:
                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        if not self._running:
                            break
                        logger.exception("Failed to accept connection")
                        continue

                    if not pool.submit(client_socket, address):
                        self._send_queue_full_response(client_socket, address)
            finally:
                self._running = False
                pool.shutdown()
                self._pool = None

    def stop(self, *, graceful: bool = False) -> None:
        """Stop accepting; with ``graceful`` let in-flight requests finish first."""
        self._running = False
        server_socket = self._server_socket
        if server_socket is not None:
            server_socket.close()
            self._server_socket = None
        pool = self._pool
        if pool is not None:
            pool.shutdown(graceful=graceful, timeout=self.drain_timeout_secs)
            self._pool = None

    def _send_queue_full_response(
        self, client_socket: socket.socket, address: tuple[str, int]
    ) -> None:
        with client_socket:
            started_at = time.perf_counter()
            self.metrics.connection_rejected()
            response = error_response(503)
            try:
                discard_pending_input(client_socket)
                client_socket.settimeout(SOCKET_TIMEOUT_SECS)
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError:
                return
            self._record_and_log(
                address=address,
                method="-",
                path="-",
                response=response,
                payload_size=bytes_sent,
                bytes_in=0,
                started_at=started_at,
            )

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            self.metrics.connection_opened()
            try:
                client_socket.settimeout(SOCKET_TIMEOUT_SECS)
                self._serve_connection(client_socket, address)
            except Exception:
                logger.exception("Unhandled error while serving client %s", address[0])
            finally:
                self.metrics.connection_closed()

    def _serve_connection(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        started_at = time.perf_counter()
        try:
            raw_request = read_http_request_head(client_socket)
        except HeaderTooLargeError as exc:
            self.metrics.record_read_error(exc.__class__.__name__)
            self._send_error(client_socket, address, 431, started_at)
            return
        except SocketTimeoutError as exc:
            self.metrics.record_read_error(exc.__class__.__name__)
            self._send_error(client_socket, address, 408, started_at)
            return
        except MalformedRequestError as exc:
            self.metrics.record_read_error(exc.__class__.__name__)
            self._send_error(client_socket, address, 400, started_at)
            return
        except OSError:
            return

        if not raw_request:
            return

        try:
            request = HTTPRequest.from_bytes(raw_request)
        except HTTPRequestParseError as exc:
            self._send_error(
                client_socket, address, exc.status_code, started_at, bytes_in=len(raw_request)
            )
            return

        self.metrics.request_started()
        try:
            response = self._dispatch(request)
            self._write_response(
                client_socket, address, request, response, started_at, len(raw_request)
            )
        finally:
            self.metrics.request_finished()

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in SERVED_METHODS:
            return error_response(405, Allow=", ".join(SERVED_METHODS))

        try:
            response = serve_path(request, self.config)
        except Exception:
            logger.exception("Unhandled error while serving %s", request.path)
            response = error_response(500)

        if request.method == "HEAD":
            return as_head_response(response)
        return response

    def _write_response(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        request: HTTPRequest,
        response: HTTPResponse,
        started_at: float,
        bytes_in: int,
    ) -> None:
        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except ResponseWriteError as exc:
            self.metrics.record_transfer_error(truncated=exc.headers_sent)
            if exc.headers_sent:
                logger.warning("Response for %s truncated: %s", request.path, exc)
                self._record_and_log(
                    address=address,
                    method=request.method,
                    path=request.path,
                    response=response,
                    payload_size=exc.bytes_sent,
                    bytes_in=bytes_in,
                    started_at=started_at,
                )
                return
            logger.exception("Failed to serve %s", request.path)
            self._send_error(
                client_socket,
                address,
                500,
                started_at,
                method=request.method,
                path=request.path,
                bytes_in=bytes_in,
            )
            return
        except OSError as exc:
            self.metrics.record_transfer_error(truncated=True)
            logger.warning("Client %s went away during %s: %s", address[0], request.path, exc)
            return

        self._record_and_log(
            address=address,
            method=request.method,
            path=request.path,
            response=response,
            payload_size=bytes_sent,
            bytes_in=bytes_in,
            started_at=started_at,
        )

    def _send_error(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        status_code: int,
        started_at: float,
        *,
        method: str = "-",
        path: str = "-",
        bytes_in: int = 0,
    ) -> None:
        response = error_response(status_code)
        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except OSError:
            return
        self._record_and_log(
            address=address,
            method=method,
            path=path,
            response=response,
            payload_size=bytes_sent,
            bytes_in=bytes_in,
            started_at=started_at,
        )

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        payload_size: int,
        bytes_in: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        self.metrics.record_request(
            status_code=response.status_code,
            duration_ms=duration_ms,
            bytes_sent=payload_size,
        )
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_in": bytes_in,
            "bytes_out": payload_size,
            "latency_ms": round(duration_ms, 3),
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_in=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_in"],
            event["bytes_out"],
            duration_ms,
        )


def _open_browser_when_ready(server: FileServer) -> None:
    if server.wait_until_ready(timeout=5.0):
        webbrowser.open(server.url)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a local directory over HTTP")
    parser.add_argument("--root", default=".", help="Directory to serve (default: current directory)")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument(
        "--scan-ports",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Use the first free port at or after --port",
    )
    parser.add_argument("--workers", type=int, default=WORKER_COUNT)
    parser.add_argument("--queue-size", type=int, default=REQUEST_QUEUE_SIZE)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    parser.add_argument("--open-browser", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        port = find_open_port(args.port, host=args.host) if args.scan_ports else args.port
        config = ServerConfig.for_directory(args.root, port=port, host=args.host)
    except OSError as exc:
        logger.error("Cannot start server: %s", exc)
        return 1

    server = FileServer(
        config,
        worker_count=args.workers,
        request_queue_size=args.queue_size,
        log_format=args.log_format,
    )
    if args.open_browser:
        threading.Thread(target=_open_browser_when_ready, args=(server,), daemon=True).start()
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
