"""
Bitfinex Client - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Secure logging for the request pipeline with:
- Credential masking (API key, signature, payload headers)
  Signed calls never carry parameters in the URL, so only headers
  need masking
- Request/response sanitization
- Structured logging format
- Request id correlation

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log the API secret (it never reaches this module)
2. Mask authentication headers of both API generations
3. Log a hash of the request body instead of the body
4. Truncate response previews

============================================================
"""

import hashlib
import itertools
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SENSITIVE DATA PATTERNS
# ============================================================

# Header names that should be masked
SENSITIVE_HEADERS = {
    "bfx-apikey",
    "bfx-signature",
    "x-bfx-apikey",
    "x-bfx-payload",
    "x-bfx-signature",
    "authorization",
}


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Mask sensitive headers.

    Args:
        headers: Request headers

    Returns:
        Headers with sensitive values masked
    """
    if not headers:
        return {}

    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

@dataclass
class RequestLogEntry:
    """Structured log entry for requests."""

    timestamp: str
    operation: str
    method: str
    url: str
    request_id: str

    signed: bool = False
    headers: Dict[str, str] = None
    body_hash: str = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON logging."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class ResponseLogEntry:
    """Structured log entry for responses."""

    timestamp: str
    operation: str
    request_id: str

    status_code: Optional[int]
    latency_ms: float
    success: bool

    error_category: str = None
    error_code: str = None
    error_message: str = None

    response_preview: str = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON logging."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


# ============================================================
# CLIENT LOGGER
# ============================================================

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ClientLogger:
    """
    Secure logger for client requests.

    Provides structured logging with automatic credential masking.
    """

    def __init__(self, name: str = "bitfinex_client", logger_name: str = None):
        """
        Args:
            name: Prefix for request ids and messages
            logger_name: Logger name (default: bitfinex_client.requests)
        """
        self._name = name
        self._logger = logging.getLogger(logger_name or f"{name}.requests")
        self._counter = itertools.count(1)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _generate_request_id(self) -> str:
        return f"{self._name}-{next(self._counter)}"

    @staticmethod
    def hash_body(body: Optional[str]) -> Optional[str]:
        """Short SHA-256 of a request body."""
        if not body:
            return None
        return hashlib.sha256(body.encode("utf-8")).hexdigest()[:16]

    def log_request(
        self,
        operation: str,
        method: str,
        url: str,
        headers: Dict[str, str] = None,
        body: Optional[str] = None,
        signed: bool = False,
    ) -> str:
        """
        Log outgoing request.

        Returns:
            Request ID for correlation
        """
        request_id = self._generate_request_id()

        entry = RequestLogEntry(
            timestamp=_now(),
            operation=operation,
            method=method,
            url=url,
            request_id=request_id,
            signed=signed,
            headers=mask_headers(headers) if headers else None,
            body_hash=self.hash_body(body),
        )

        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        operation: str,
        request_id: str,
        status_code: Optional[int],
        latency_ms: float,
        success: bool,
        error_category: str = None,
        error_code: str = None,
        error_message: str = None,
        response_body: Optional[bytes] = None,
    ) -> None:
        """Log response or failure for a request id."""
        preview = None
        if response_body:
            preview = response_body[:200].decode("utf-8", errors="replace")

        entry = ResponseLogEntry(
            timestamp=_now(),
            operation=operation,
            request_id=request_id,
            status_code=status_code,
            latency_ms=round(latency_ms, 3),
            success=success,
            error_category=error_category,
            error_code=error_code,
            error_message=error_message[:200] if error_message else None,
            response_preview=preview,
        )

        if success:
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        self._logger.info(f"[{self._name}] {message}", extra=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        self._logger.warning(f"[{self._name}] {message}", extra=kwargs)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        self._logger.debug(f"[{self._name}] {message}", extra=kwargs)
