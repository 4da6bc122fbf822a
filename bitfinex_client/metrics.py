"""
Bitfinex Client - Request Metrics.

============================================================
PURPOSE
============================================================
In-process metrics for client calls.

METRICS TRACKED:
- Request latency (overall and by endpoint template)
- Success/failure counts
- Failures by error category
- Signed call count (= nonces spent)

============================================================
"""

import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List


@dataclass
class LatencyStats:
    """Latency statistics."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        """Average latency in ms."""
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, latency_ms: float) -> None:
        """Record a latency measurement."""
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg_ms": self.avg_ms,
            "min_ms": self.min_ms if self.min_ms != float("inf") else 0,
            "max_ms": self.max_ms,
        }


class ClientMetrics:
    """
    Metrics collector for one client.

    Thread-safe metrics collection and reporting.
    """

    def __init__(self, max_recent: int = 100):
        self._lock = threading.Lock()
        self._max_recent = max_recent
        self._clear()

    def _clear(self) -> None:
        self._start_time = datetime.now(timezone.utc)
        self._latency: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._success = 0
        self._failure = 0
        self._signed = 0
        self._errors_by_category: Dict[str, int] = defaultdict(int)
        self._recent_requests: List[Dict[str, Any]] = []

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._clear()

    def record_request(
        self,
        endpoint: str,
        latency_ms: float,
        success: bool,
        signed: bool = False,
        status_code: int = None,
        error_category: str = None,
    ) -> None:
        """
        Record a finished call.

        Args:
            endpoint: Endpoint template (keeps cardinality bounded)
            latency_ms: Wall time of the round trip
            success: Whether a value was returned
            signed: Whether a nonce was spent
            status_code: HTTP status, if a response arrived
            error_category: ErrorCategory value if failed
        """
        with self._lock:
            self._latency[endpoint].record(latency_ms)
            self._latency["_all"].record(latency_ms)

            if success:
                self._success += 1
            else:
                self._failure += 1
                if error_category:
                    self._errors_by_category[error_category] += 1

            if signed:
                self._signed += 1

            self._recent_requests.append({
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "endpoint": endpoint,
                "latency_ms": latency_ms,
                "success": success,
                "signed": signed,
                "status_code": status_code,
                "error_category": error_category,
            })
            if len(self._recent_requests) > self._max_recent:
                self._recent_requests.pop(0)

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary."""
        with self._lock:
            total = self._success + self._failure
            uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
            all_latency = self._latency.get("_all", LatencyStats())

            return {
                "uptime_seconds": uptime,
                "requests": {
                    "total": total,
                    "success": self._success,
                    "failure": self._failure,
                    "signed": self._signed,
                    "success_rate": self._success / total if total > 0 else 1.0,
                },
                "latency": {
                    "avg_ms": all_latency.avg_ms,
                    "min_ms": all_latency.min_ms if all_latency.min_ms != float("inf") else 0,
                    "max_ms": all_latency.max_ms,
                },
                "errors": dict(self._errors_by_category),
            }

    def get_latency_by_endpoint(self) -> Dict[str, Dict[str, float]]:
        """Get latency stats by endpoint."""
        with self._lock:
            return {
                endpoint: stats.to_dict()
                for endpoint, stats in self._latency.items()
                if endpoint != "_all"
            }

    def get_recent_requests(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Get recent requests."""
        with self._lock:
            return list(self._recent_requests[-limit:])
