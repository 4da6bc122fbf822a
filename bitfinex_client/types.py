"""
Bitfinex Client - Core Types.

============================================================
PURPOSE
============================================================
Value types shared by every stage of the request pipeline.

DESIGN PRINCIPLES:
- Immutable where the value crosses a call boundary
- API version carried explicitly, never inferred from the URL
- Results are values, never exceptions

============================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import BitfinexError


T = TypeVar("T")


# ============================================================
# ENUMS
# ============================================================

class ApiVersion(Enum):
    """API generation. The value is the URL version digit."""

    LEGACY = "1"
    CURRENT = "2"


class HttpMethod(Enum):
    """HTTP verbs used by the exchange."""

    GET = "GET"
    POST = "POST"


# ============================================================
# CREDENTIALS
# ============================================================

@dataclass(frozen=True)
class Credentials:
    """
    API key pair.

    The secret is only ever used as an HMAC key. Instances are
    immutable; a client replaces them as a whole.
    """

    key: str
    """Public key identifier, sent in headers."""

    secret: str = field(repr=False)
    """Signing secret. Never transmitted or logged."""

    def __post_init__(self) -> None:
        if not self.key or not self.secret:
            raise ValueError("Credentials require both key and secret")


# ============================================================
# ENDPOINT DESCRIPTOR
# ============================================================

@dataclass(frozen=True)
class EndpointDescriptor:
    """Static description of one logical API endpoint."""

    method: HttpMethod
    """HTTP verb."""

    template: str
    """Path template with positional ``{}`` placeholders."""

    version: ApiVersion
    """API generation; selects URL segment and signing scheme."""

    signed: bool = False
    """Whether the call needs authentication headers."""

    result_type: Any = Any
    """Type the success body is validated into."""

    unwrap_single: bool = False
    """Body is a one-element array wrapping a scalar result."""

    @property
    def placeholder_count(self) -> int:
        """Number of ``{}`` placeholders in the template."""
        return self.template.count("{}")


# ============================================================
# REQUEST / RESPONSE
# ============================================================

@dataclass
class RequestDescriptor:
    """Fully built request, ready for the transport."""

    method: HttpMethod
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    nonce: Optional[int] = None
    """Nonce spent by this request, if signed."""

    @property
    def signed(self) -> bool:
        return self.nonce is not None


@dataclass
class TransportResponse:
    """Raw response returned by a transport."""

    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


# ============================================================
# CALL RESULT
# ============================================================

@dataclass
class CallResult(Generic[T]):
    """
    Outcome of one API call.

    Exactly one of ``data`` and ``error`` is meaningful: ``error``
    is None on success.
    """

    data: Optional[T] = None
    error: Optional["BitfinexError"] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T) -> "CallResult[T]":
        return cls(data=data)

    @classmethod
    def fail(cls, error: "BitfinexError") -> "CallResult[T]":
        return cls(data=None, error=error)

    def unwrap(self) -> T:
        """
        Return the data or raise the error.

        Raises:
            BitfinexException: If the call failed
        """
        if self.error is not None:
            from .errors import BitfinexException
            raise BitfinexException(self.error)
        return self.data
