"""Bounded worker pool for accepted client connections."""

from __future__ import annotations

import logging
import queue
import socket
import threading
import time
from collections.abc import Callable

ClientAddress = tuple[str, int]
ConnectionJob = tuple[socket.socket, ClientAddress]
ConnectionHandler = Callable[[socket.socket, ClientAddress], None]

logger = logging.getLogger(__name__)


class ThreadPool:
    """Fixed set of worker threads fed from a bounded connection queue.

    Each accepted connection is handled start to finish by one worker, so a
    slow transfer only occupies its own thread.
    """

    def __init__(self, worker_count: int, queue_size: int, handler: ConnectionHandler) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")

        self._handler = handler
        self._queue: queue.Queue[ConnectionJob | None] = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._worker_count = worker_count
        self._active_jobs = 0
        self._drain_condition = threading.Condition(threading.Lock())
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._threads)

    def start(self) -> None:
        for index in range(self._worker_count):
            worker = threading.Thread(
                target=self._worker_loop,
                name=f"file-worker-{index}",
                daemon=True,
            )
            self._threads.append(worker)
            worker.start()

    def submit(self, client_socket: socket.socket, address: ClientAddress) -> bool:
        """Queue a connection; False means the caller still owns the socket."""
        if self._stop_event.is_set():
            return False
        with self._drain_condition:
            self._active_jobs += 1
        try:
            self._queue.put_nowait((client_socket, address))
        except queue.Full:
            self._job_done()
            return False
        return True

    def wait_for_drain(self, timeout: float | None = None) -> bool:
        """Wait until every submitted connection has been handled."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._drain_condition:
            while self._active_jobs > 0:
                if deadline is None:
                    self._drain_condition.wait(timeout=0.1)
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._drain_condition.wait(timeout=min(remaining, 0.1))
        return True

    def shutdown(self, *, graceful: bool = False, timeout: float | None = None) -> None:
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True

        if graceful:
            self.wait_for_drain(timeout=timeout)

        self._stop_event.set()
        for _ in self._threads:
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                break

        for thread in self._threads:
            thread.join(timeout=1.0)

        # Connections still queued were never picked up by a worker.
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not None:
                item[0].close()
                self._job_done()

    def _job_done(self) -> None:
        with self._drain_condition:
            self._active_jobs = max(0, self._active_jobs - 1)
            self._drain_condition.notify_all()

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                item = self._queue.get(timeout=0.2)
            except queue.Empty:
                continue
            if item is None:
                return
            client_socket, address = item
            try:
                self._handler(client_socket, address)
            except Exception:
                logger.exception("Connection handler failed for %s", address[0])
            finally:
                self._job_done()
