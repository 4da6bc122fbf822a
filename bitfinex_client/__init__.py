"""
Bitfinex Client Package.

============================================================
PURPOSE
============================================================
Signed request construction and dispatch for the Bitfinex REST
API, both generations:
- v1 (legacy): base64 JSON payload, X-BFX-* headers
- v2 (current): path + nonce + body envelope, bfx-* headers

COMPONENTS:
- BitfinexClient: Dispatch plus one method per endpoint
- RequestBuilder: Query strings, nonces, signatures
- ResponseParser: Success bodies and error envelopes
- NonceGenerator: Strictly increasing nonces
- ClientMetrics / ClientLogger: Observability

ERROR HANDLING:
- Expected failures are returned as CallResult errors
- BitfinexConfigurationError for programmer errors

============================================================
"""

# Types
from .types import (
    ApiVersion,
    HttpMethod,
    Credentials,
    EndpointDescriptor,
    RequestDescriptor,
    TransportResponse,
    CallResult,
)

# Errors
from .errors import (
    BitfinexError,
    BitfinexException,
    BitfinexConfigurationError,
    ErrorCategory,
    ServerErrorKind,
    RetryEligibility,
    map_server_error,
)

# Configuration
from .config import ClientConfig

# Pipeline
from .nonce import NonceGenerator
from .signing import CurrentScheme, LegacyScheme, SigningScheme, get_signing_scheme, sign
from .endpoints import build_url, fill_path_parameters
from .request_builder import RequestBuilder
from .response_parser import ResponseParser
from .transport import AiohttpTransport, Transport

# Observability
from .logging_utils import ClientLogger, mask_headers, mask_value
from .metrics import ClientMetrics

# Client
from .client import BitfinexClient


__all__ = [
    # Types
    "ApiVersion",
    "HttpMethod",
    "Credentials",
    "EndpointDescriptor",
    "RequestDescriptor",
    "TransportResponse",
    "CallResult",
    # Errors
    "BitfinexError",
    "BitfinexException",
    "BitfinexConfigurationError",
    "ErrorCategory",
    "ServerErrorKind",
    "RetryEligibility",
    "map_server_error",
    # Configuration
    "ClientConfig",
    # Pipeline
    "NonceGenerator",
    "SigningScheme",
    "CurrentScheme",
    "LegacyScheme",
    "get_signing_scheme",
    "sign",
    "build_url",
    "fill_path_parameters",
    "RequestBuilder",
    "ResponseParser",
    "Transport",
    "AiohttpTransport",
    # Observability
    "ClientLogger",
    "ClientMetrics",
    "mask_headers",
    "mask_value",
    # Client
    "BitfinexClient",
]
