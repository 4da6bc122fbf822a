"""
Bitfinex Client - Request Signing.

============================================================
PURPOSE
============================================================
HMAC-SHA384 authentication for both API generations.

SCHEMES:
- CurrentScheme (v2):
    envelope = "/api" + path + nonce + json(params)
    headers  = bfx-nonce, bfx-apikey, bfx-signature
    body     = json(params), "{}" when empty
- LegacyScheme (v1):
    payload  = base64(json({"request": path, "nonce": nonce, **params}))
    envelope = payload
    headers  = X-BFX-APIKEY, X-BFX-PAYLOAD, X-BFX-SIGNATURE
    body     = none

SECURITY REQUIREMENTS:
1. The secret is only used as the HMAC key
2. Signatures are lowercase hex
3. Signing is pure: same inputs, same output

============================================================
"""

import base64
import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .types import ApiVersion, Credentials


# ============================================================
# HEADER NAMES
# ============================================================

HEADER_NONCE = "bfx-nonce"
HEADER_APIKEY = "bfx-apikey"
HEADER_SIGNATURE = "bfx-signature"

LEGACY_HEADER_APIKEY = "X-BFX-APIKEY"
LEGACY_HEADER_PAYLOAD = "X-BFX-PAYLOAD"
LEGACY_HEADER_SIGNATURE = "X-BFX-SIGNATURE"


def to_json(value: Any) -> str:
    """Compact JSON as sent on the wire and fed to the signature."""
    return json.dumps(value, separators=(",", ":"), default=str)


def sign(
    credentials: Credentials,
    envelope: str,
    digestmod: Callable = hashlib.sha384,
) -> str:
    """
    Sign an envelope with the credential secret.

    Args:
        credentials: Key pair; only the secret is used
        envelope: Exact string to authenticate
        digestmod: Hash constructor

    Returns:
        Lowercase hex signature
    """
    return hmac.new(
        credentials.secret.encode("utf-8"),
        envelope.encode("utf-8"),
        digestmod,
    ).hexdigest().lower()


@dataclass
class SignedPayload:
    """Authentication output merged into a request."""

    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    envelope: str = ""
    """Exact string that was signed."""


# ============================================================
# SIGNING SCHEMES
# ============================================================

class SigningScheme(ABC):
    """Signs one request for a given API generation."""

    version: ApiVersion

    def __init__(self, digestmod: Callable = hashlib.sha384):
        self._digestmod = digestmod

    @abstractmethod
    def build_envelope(self, path: str, nonce: str, params: Dict[str, Any]) -> str:
        """Return the exact string to be signed."""
        pass

    @abstractmethod
    def sign_request(
        self,
        credentials: Credentials,
        path: str,
        nonce: int,
        params: Dict[str, Any],
    ) -> SignedPayload:
        """
        Produce auth headers (and body, if any) for a request.

        Args:
            credentials: Key pair
            path: URL path, plus query for the current scheme
            nonce: Nonce already taken from the generator
            params: Parameter bag with None values removed
        """
        pass

    def sign(self, credentials: Credentials, envelope: str) -> str:
        return sign(credentials, envelope, self._digestmod)


class CurrentScheme(SigningScheme):
    """v2 scheme: signature over path, nonce and JSON body."""

    version = ApiVersion.CURRENT

    def build_envelope(self, path: str, nonce: str, params: Dict[str, Any]) -> str:
        return f"/api{path}{nonce}{to_json(params)}"

    def sign_request(
        self,
        credentials: Credentials,
        path: str,
        nonce: int,
        params: Dict[str, Any],
    ) -> SignedPayload:
        body = to_json(params)
        envelope = self.build_envelope(path, str(nonce), params)

        return SignedPayload(
            headers={
                HEADER_NONCE: str(nonce),
                HEADER_APIKEY: credentials.key,
                HEADER_SIGNATURE: self.sign(credentials, envelope),
            },
            body=body,
            envelope=envelope,
        )


class LegacyScheme(SigningScheme):
    """v1 scheme: signature over a base64 JSON payload."""

    version = ApiVersion.LEGACY

    def build_envelope(self, path: str, nonce: str, params: Dict[str, Any]) -> str:
        document: Dict[str, Any] = {"request": path, "nonce": nonce}
        for key, value in params.items():
            document[key] = value
        return base64.b64encode(to_json(document).encode("utf-8")).decode("ascii")

    def sign_request(
        self,
        credentials: Credentials,
        path: str,
        nonce: int,
        params: Dict[str, Any],
    ) -> SignedPayload:
        payload = self.build_envelope(path, str(nonce), params)

        return SignedPayload(
            headers={
                LEGACY_HEADER_APIKEY: credentials.key,
                LEGACY_HEADER_PAYLOAD: payload,
                LEGACY_HEADER_SIGNATURE: self.sign(credentials, payload),
            },
            body=None,
            envelope=payload,
        )


# ============================================================
# SCHEME REGISTRY
# ============================================================

def get_signing_scheme(
    version: ApiVersion,
    digestmod: Callable = hashlib.sha384,
) -> SigningScheme:
    """
    Return the signing scheme for an API version.

    Raises:
        ValueError: If the version has no scheme
    """
    if version == ApiVersion.CURRENT:
        return CurrentScheme(digestmod)
    if version == ApiVersion.LEGACY:
        return LegacyScheme(digestmod)
    raise ValueError(f"No signing scheme for version: {version}")
