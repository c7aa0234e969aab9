"""Thread-safe in-memory counters for served requests."""

from __future__ import annotations

import threading
from collections import Counter

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2000, 5000)


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_requests = 0
        self._open_connections = 0
        self._inflight_requests = 0
        self._rejected_connections = 0
        self._bytes_sent_total = 0
        self._status_counts: Counter[str] = Counter()
        self._latency_buckets: Counter[str] = Counter()
        self._read_errors_by_type: Counter[str] = Counter()
        self._transfer_errors = 0
        self._truncated_responses = 0

    def connection_opened(self) -> None:
        with self._lock:
            self._open_connections += 1

    def connection_closed(self) -> None:
        with self._lock:
            self._open_connections = max(0, self._open_connections - 1)

    def connection_rejected(self) -> None:
        with self._lock:
            self._rejected_connections += 1

    def request_started(self) -> None:
        with self._lock:
            self._inflight_requests += 1

    def request_finished(self) -> None:
        with self._lock:
            self._inflight_requests = max(0, self._inflight_requests - 1)

    def record_request(self, status_code: int, duration_ms: float, bytes_sent: int) -> None:
        with self._lock:
            self._total_requests += 1
            self._status_counts[str(status_code)] += 1
            self._bytes_sent_total += bytes_sent
            self._latency_buckets[self._bucket_label(duration_ms)] += 1

    def record_read_error(self, error_type: str) -> None:
        with self._lock:
            self._read_errors_by_type[error_type] += 1

    def record_transfer_error(self, *, truncated: bool) -> None:
        with self._lock:
            self._transfer_errors += 1
            if truncated:
                self._truncated_responses += 1

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            return {
                "total_requests": self._total_requests,
                "open_connections": self._open_connections,
                "inflight_requests": self._inflight_requests,
                "rejected_connections": self._rejected_connections,
                "bytes_sent_total": self._bytes_sent_total,
                "status_counts": dict(self._status_counts),
                "latency_buckets_ms": dict(self._latency_buckets),
                "read_errors_by_type": dict(self._read_errors_by_type),
                "transfer_errors": self._transfer_errors,
                "truncated_responses": self._truncated_responses,
            }

    @staticmethod
    def _bucket_label(duration_ms: float) -> str:
        for bucket in LATENCY_BUCKETS_MS:
            if duration_ms <= bucket:
                return f"le_{bucket}"
        return "gt_5000"
