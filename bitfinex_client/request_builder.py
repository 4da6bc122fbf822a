"""
Bitfinex Client - Request Builder.

============================================================
PURPOSE
============================================================
Turn (url, method, parameters, signed, version) into a complete
RequestDescriptor.

RULES:
- None-valued parameters are dropped, never sent as null/empty
- Unsigned calls carry parameters as a percent-encoded query string
- Content-Type and Accept are always application/json
- Signed calls take a nonce at build time and dispatch on version
- The caller's parameter dict is never mutated

============================================================
"""

import hashlib
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode, urlsplit

from .errors import BitfinexConfigurationError
from .nonce import NonceGenerator
from .signing import get_signing_scheme
from .types import ApiVersion, Credentials, HttpMethod, RequestDescriptor


logger = logging.getLogger(__name__)


JSON_MEDIA_TYPE = "application/json"


def elide_none(parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of the parameter bag without None values."""
    if not parameters:
        return {}
    return {key: value for key, value in parameters.items() if value is not None}


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_string(parameters: Dict[str, Any]) -> str:
    """Percent-encoded ``key=value&...`` in insertion order."""
    return urlencode([(key, _query_value(value)) for key, value in parameters.items()])


def signing_path(url: str, version: ApiVersion) -> str:
    """
    Path component fed to the signature.

    The current scheme signs path and query, the legacy scheme the
    path only.
    """
    parts = urlsplit(url)
    if version == ApiVersion.CURRENT and parts.query:
        return f"{parts.path}?{parts.query}"
    return parts.path


# ============================================================
# REQUEST BUILDER
# ============================================================

class RequestBuilder:
    """
    Builds signed and unsigned requests.

    Holds the nonce generator shared by every signed call of a
    client.
    """

    def __init__(
        self,
        nonce_generator: Optional[NonceGenerator] = None,
        digestmod: Callable = hashlib.sha384,
    ):
        self._nonces = nonce_generator or NonceGenerator()
        self._schemes = {
            version: get_signing_scheme(version, digestmod)
            for version in ApiVersion
        }

    @property
    def nonce_generator(self) -> NonceGenerator:
        return self._nonces

    def build(
        self,
        url: str,
        method: HttpMethod,
        parameters: Optional[Dict[str, Any]] = None,
        signed: bool = False,
        version: ApiVersion = ApiVersion.CURRENT,
        credentials: Optional[Credentials] = None,
    ) -> RequestDescriptor:
        """
        Build a request.

        Args:
            url: Absolute URL without query string
            method: HTTP verb
            parameters: Parameter bag (not modified)
            signed: Add authentication
            version: API generation of the endpoint
            credentials: Required when signed

        Returns:
            RequestDescriptor

        Raises:
            BitfinexConfigurationError: Signed call without credentials
        """
        params = elide_none(parameters)

        if not signed and params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{build_query_string(params)}"

        request = RequestDescriptor(
            method=method,
            url=url,
            headers={
                "Content-Type": JSON_MEDIA_TYPE,
                "Accept": JSON_MEDIA_TYPE,
            },
        )

        if not signed:
            return request

        if credentials is None:
            raise BitfinexConfigurationError(
                "Signed call requires API credentials; call set_api_credentials first"
            )

        nonce = self._nonces.next()
        scheme = self._schemes[version]
        payload = scheme.sign_request(
            credentials,
            signing_path(url, version),
            nonce,
            params,
        )

        request.headers.update(payload.headers)
        request.body = payload.body
        request.nonce = nonce

        logger.debug(f"Signed {method.value} {urlsplit(url).path} (v{version.value}, nonce={nonce})")
        return request
