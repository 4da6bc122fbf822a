"""
Bitfinex Client - Error Handling and Mapping.

============================================================
PURPOSE
============================================================
Standardized error values for the request pipeline with:
- One taxonomy for both API generations
- Server error code classification
- Retry eligibility hints for callers
- Error context preservation

============================================================
ERROR CATEGORIES
============================================================
1. ARGUMENT         - Caller input rejected before any network call
2. SERVER           - Exchange answered with an error envelope
3. TRANSPORT        - Network failure or unparseable error body
4. TIMEOUT          - Call exceeded its deadline
5. DESERIALIZATION  - Success body does not match the result type
6. NO_RESULT        - Singleton endpoint returned an empty array

The client never retries. ``RetryEligibility`` only tells the
caller what is safe to do next.

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ErrorCategory(Enum):
    """Standardized error categories."""

    ARGUMENT = "ARGUMENT"
    SERVER = "SERVER"
    TRANSPORT = "TRANSPORT"
    TIMEOUT = "TIMEOUT"
    DESERIALIZATION = "DESERIALIZATION"
    NO_RESULT = "NO_RESULT"


class ServerErrorKind(Enum):
    """Classification of server-side error codes."""

    INVALID_PARAMS = "INVALID_PARAMS"
    AUTHENTICATION = "AUTHENTICATION"
    INVALID_NONCE = "INVALID_NONCE"
    RATE_LIMIT = "RATE_LIMIT"
    MAINTENANCE = "MAINTENANCE"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"
    UNKNOWN = "UNKNOWN"


class RetryEligibility(Enum):
    """Whether error is eligible for retry."""

    RETRY = "RETRY"           # Safe to retry
    NO_RETRY = "NO_RETRY"     # Should not retry
    BACKOFF = "BACKOFF"       # Retry with exponential backoff


# ============================================================
# BITFINEX ERROR
# ============================================================

@dataclass
class BitfinexError:
    """
    Structured error returned inside a ``CallResult``.

    ``code`` is the exchange's own code for SERVER errors and a
    normalized client code otherwise.
    """

    # Core fields
    category: ErrorCategory
    code: str
    message: str

    # Retry info
    retry_eligible: RetryEligibility = RetryEligibility.NO_RETRY

    # Server classification
    server_kind: Optional[ServerErrorKind] = None
    server_category: Optional[str] = None   # first element of the envelope
    http_status: Optional[int] = None

    # Context
    endpoint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "retry_eligible": self.retry_eligible.value,
            "server_kind": self.server_kind.value if self.server_kind else None,
            "server_category": self.server_category,
            "http_status": self.http_status,
            "endpoint": self.endpoint,
        }

    def is_retryable(self) -> bool:
        """Check if error is retryable."""
        return self.retry_eligible in (RetryEligibility.RETRY, RetryEligibility.BACKOFF)

    @property
    def is_server_error(self) -> bool:
        return self.category == ErrorCategory.SERVER

    def __str__(self) -> str:
        """String representation."""
        return f"[{self.category.value}] {self.code}: {self.message}"


class BitfinexException(Exception):
    """Exception wrapper for BitfinexError."""

    def __init__(self, error: BitfinexError):
        self.error = error
        super().__init__(str(error))


class BitfinexConfigurationError(RuntimeError):
    """
    Client is misconfigured (e.g. signed call without credentials).

    Raised, never returned: it indicates a programming error, not a
    runtime condition.
    """


# ============================================================
# SERVER ERROR MAPPING
# ============================================================

# Bitfinex error codes to classification
SERVER_ERROR_MAP: Dict[int, Tuple[ServerErrorKind, RetryEligibility]] = {
    # Generic
    10000: (ServerErrorKind.UNKNOWN, RetryEligibility.NO_RETRY),
    10001: (ServerErrorKind.EXCHANGE_ERROR, RetryEligibility.RETRY),
    10008: (ServerErrorKind.EXCHANGE_ERROR, RetryEligibility.BACKOFF),

    # Parameters
    10020: (ServerErrorKind.INVALID_PARAMS, RetryEligibility.NO_RETRY),
    10050: (ServerErrorKind.INVALID_PARAMS, RetryEligibility.NO_RETRY),

    # Authentication
    10100: (ServerErrorKind.AUTHENTICATION, RetryEligibility.NO_RETRY),
    10111: (ServerErrorKind.AUTHENTICATION, RetryEligibility.NO_RETRY),
    10112: (ServerErrorKind.AUTHENTICATION, RetryEligibility.NO_RETRY),
    10113: (ServerErrorKind.AUTHENTICATION, RetryEligibility.NO_RETRY),
    10114: (ServerErrorKind.INVALID_NONCE, RetryEligibility.RETRY),
    10200: (ServerErrorKind.AUTHENTICATION, RetryEligibility.NO_RETRY),

    # Rate limiting
    11010: (ServerErrorKind.RATE_LIMIT, RetryEligibility.BACKOFF),

    # Platform
    11000: (ServerErrorKind.MAINTENANCE, RetryEligibility.BACKOFF),
    20051: (ServerErrorKind.MAINTENANCE, RetryEligibility.BACKOFF),
    20060: (ServerErrorKind.MAINTENANCE, RetryEligibility.BACKOFF),
}


def map_server_error(
    code: Any,
    message: str,
    http_status: int = None,
    server_category: str = None,
    endpoint: str = None,
) -> BitfinexError:
    """
    Map a Bitfinex error envelope to a SERVER error.

    Args:
        code: Exchange error code (number or numeric string)
        message: Exchange error message
        http_status: HTTP status code
        server_category: Leading tag of the envelope (usually "error")
        endpoint: Request path

    Returns:
        BitfinexError with category SERVER
    """
    try:
        numeric = int(code)
    except (TypeError, ValueError):
        numeric = None

    if numeric in SERVER_ERROR_MAP:
        kind, retry = SERVER_ERROR_MAP[numeric]
    elif http_status == 429:
        kind = ServerErrorKind.RATE_LIMIT
        retry = RetryEligibility.BACKOFF
    elif http_status in (401, 403):
        kind = ServerErrorKind.AUTHENTICATION
        retry = RetryEligibility.NO_RETRY
    elif http_status and http_status >= 500:
        kind = ServerErrorKind.EXCHANGE_ERROR
        retry = RetryEligibility.RETRY
    else:
        kind = ServerErrorKind.UNKNOWN
        retry = RetryEligibility.NO_RETRY

    return BitfinexError(
        category=ErrorCategory.SERVER,
        code=str(code),
        message=message,
        retry_eligible=retry,
        server_kind=kind,
        server_category=server_category,
        http_status=http_status,
        endpoint=endpoint,
    )


# ============================================================
# CLIENT ERROR HELPERS
# ============================================================

def create_argument_error(message: str, endpoint: str = None) -> BitfinexError:
    """Create argument error."""
    return BitfinexError(
        category=ErrorCategory.ARGUMENT,
        code="ARGUMENT_ERROR",
        message=message,
        retry_eligible=RetryEligibility.NO_RETRY,
        endpoint=endpoint,
    )


def create_transport_error(
    message: str,
    http_status: int = None,
    endpoint: str = None,
    retry_eligible: RetryEligibility = RetryEligibility.RETRY,
) -> BitfinexError:
    """Create transport error."""
    return BitfinexError(
        category=ErrorCategory.TRANSPORT,
        code="TRANSPORT_ERROR",
        message=message,
        retry_eligible=retry_eligible,
        http_status=http_status,
        endpoint=endpoint,
    )


def create_timeout_error(timeout_ms: int, endpoint: str = None) -> BitfinexError:
    """Create timeout error."""
    return BitfinexError(
        category=ErrorCategory.TIMEOUT,
        code="TIMEOUT",
        message=f"Request timed out after {timeout_ms}ms",
        retry_eligible=RetryEligibility.RETRY,
        endpoint=endpoint,
    )


def create_deserialization_error(
    message: str,
    http_status: int = None,
    endpoint: str = None,
) -> BitfinexError:
    """Create deserialization error."""
    return BitfinexError(
        category=ErrorCategory.DESERIALIZATION,
        code="DESERIALIZATION_ERROR",
        message=message,
        retry_eligible=RetryEligibility.NO_RETRY,
        http_status=http_status,
        endpoint=endpoint,
    )


def create_no_result_error(endpoint: str = None) -> BitfinexError:
    """Create error for an empty singleton response."""
    return BitfinexError(
        category=ErrorCategory.NO_RESULT,
        code="NO_RESULT",
        message="Response contained no result",
        retry_eligible=RetryEligibility.NO_RETRY,
        endpoint=endpoint,
    )
