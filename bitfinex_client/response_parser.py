"""
Bitfinex Client - Response Parsing.

============================================================
PURPOSE
============================================================
Turn a raw TransportResponse into a CallResult.

SUCCESS (2xx):
- Body must be JSON                     else DESERIALIZATION
- Singleton endpoints unwrap [x] -> x   [] -> NO_RESULT
- Value must match the result type      else DESERIALIZATION

FAILURE (non-2xx):
- Body ``[category, code, message]``    -> SERVER(code, message)
- Anything else                         -> TRANSPORT

============================================================
"""

import json
import logging
from functools import lru_cache
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .errors import (
    BitfinexError,
    RetryEligibility,
    create_deserialization_error,
    create_no_result_error,
    create_transport_error,
    map_server_error,
)
from .types import CallResult, TransportResponse


logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _adapter_for(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


def _preview(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def _retry_for_status(status: int) -> RetryEligibility:
    """Client errors other than 429 will fail again unchanged."""
    if status == 429:
        return RetryEligibility.BACKOFF
    if 400 <= status < 500:
        return RetryEligibility.NO_RETRY
    return RetryEligibility.RETRY


class ResponseParser:
    """Stateless response-to-result conversion."""

    def parse_error(
        self,
        response: TransportResponse,
        endpoint: Optional[str] = None,
    ) -> BitfinexError:
        """
        Parse the exchange error envelope.

        Args:
            response: Non-success response
            endpoint: Request path, for context

        Returns:
            SERVER error, or TRANSPORT error if the body is not an
            envelope
        """
        text = response.text()
        try:
            data = json.loads(text)
        except ValueError:
            data = None

        if (
            isinstance(data, list)
            and len(data) >= 3
            and data[1] is not None
            and isinstance(data[2], str)
        ):
            return map_server_error(
                code=data[1],
                message=data[2],
                http_status=response.status,
                server_category=str(data[0]) if data[0] is not None else None,
                endpoint=endpoint,
            )

        logger.warning(f"Unparseable error response ({response.status}): {_preview(text)}")
        return create_transport_error(
            f"Unparseable error response (HTTP {response.status}): {_preview(text)}",
            http_status=response.status,
            endpoint=endpoint,
            retry_eligible=_retry_for_status(response.status),
        )

    def parse_success(
        self,
        response: TransportResponse,
        result_type: Any = Any,
        unwrap_single: bool = False,
        endpoint: Optional[str] = None,
    ) -> CallResult:
        """
        Deserialize a success body into ``result_type``.

        Args:
            response: Success response
            result_type: Target type (pydantic-compatible)
            unwrap_single: Body is ``[value]`` for a scalar result
            endpoint: Request path, for context

        Returns:
            CallResult with data or error
        """
        try:
            data = json.loads(response.text())
        except ValueError as e:
            return CallResult.fail(
                create_deserialization_error(
                    f"Response is not valid JSON: {e}",
                    http_status=response.status,
                    endpoint=endpoint,
                )
            )

        if unwrap_single:
            if not isinstance(data, list):
                return CallResult.fail(
                    create_deserialization_error(
                        f"Expected an array, got {type(data).__name__}",
                        http_status=response.status,
                        endpoint=endpoint,
                    )
                )
            if not data:
                return CallResult.fail(create_no_result_error(endpoint=endpoint))
            data = data[0]

        try:
            value = _adapter_for(result_type).validate_python(data)
        except ValidationError as e:
            return CallResult.fail(
                create_deserialization_error(
                    f"Response does not match {getattr(result_type, '__name__', result_type)}: "
                    f"{e.error_count()} error(s): {e.errors()[0]['msg']}",
                    http_status=response.status,
                    endpoint=endpoint,
                )
            )

        return CallResult.ok(value)

    def parse(
        self,
        response: TransportResponse,
        result_type: Any = Any,
        unwrap_single: bool = False,
        endpoint: Optional[str] = None,
    ) -> CallResult:
        """Dispatch on status: success body or error envelope."""
        if response.is_success:
            return self.parse_success(response, result_type, unwrap_single, endpoint)
        return CallResult.fail(self.parse_error(response, endpoint))
