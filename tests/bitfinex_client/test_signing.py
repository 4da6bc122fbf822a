"""
Signing and Nonce Tests.

============================================================
PURPOSE
============================================================
Unit tests for request authentication.

TEST CATEGORIES:
- Nonce tests: Monotonicity, scale, concurrency
- Keyed hash tests: Known vectors, determinism
- Scheme tests: v2 envelope/headers, v1 payload/headers

============================================================
"""

import base64
import hashlib
import hmac
import json
import threading

import pytest

from bitfinex_client import (
    ApiVersion,
    Credentials,
    CurrentScheme,
    LegacyScheme,
    NonceGenerator,
    get_signing_scheme,
    sign,
)
from bitfinex_client.nonce import NONCE_SCALE


CREDENTIALS = Credentials(key="abc", secret="xyz")


def expected_signature(secret: str, envelope: str) -> str:
    return hmac.new(secret.encode(), envelope.encode(), hashlib.sha384).hexdigest()


# ============================================================
# NONCE TESTS
# ============================================================

class TestNonceGenerator:
    """Tests for NonceGenerator."""

    def test_scaled_milliseconds(self):
        """Test nonce is epoch milliseconds times 10."""
        generator = NonceGenerator(clock=lambda: 1500000000.123)

        assert NONCE_SCALE == 10
        assert generator.next() == 15000000001230

    def test_same_tick_still_increases(self):
        """Test two calls within one clock tick."""
        generator = NonceGenerator(clock=lambda: 1.0)

        first = generator.next()
        second = generator.next()

        assert first == 10000
        assert second == 10001
        assert generator.last == 10001

    def test_clock_going_backwards(self):
        """Test a wall clock step backwards does not reuse nonces."""
        times = iter([100.0, 50.0, 100.5])
        generator = NonceGenerator(clock=lambda: next(times))

        values = [generator.next() for _ in range(3)]

        assert values == [1000000, 1000001, 1005000]

    def test_last_initially_none(self):
        """Test last before any call."""
        assert NonceGenerator().last is None

    def test_concurrent_calls_unique_and_increasing(self):
        """Test nonces from many threads are distinct."""
        generator = NonceGenerator(clock=lambda: 42.0)
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(200):
                value = generator.next()
                with lock:
                    results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1600
        assert len(set(results)) == 1600
        assert max(results) == generator.last


# ============================================================
# KEYED HASH TESTS
# ============================================================

class TestSign:
    """Tests for the HMAC-SHA384 keyed hash."""

    def test_known_vector(self):
        """Test against a direct hmac computation."""
        envelope = "/api/v2/auth/r/wallets1234567890{}"

        signature = sign(CREDENTIALS, envelope)

        assert signature == expected_signature("xyz", envelope)
        assert len(signature) == 96
        assert signature == signature.lower()

    def test_deterministic(self):
        """Test same inputs give same output."""
        assert sign(CREDENTIALS, "payload") == sign(CREDENTIALS, "payload")

    def test_depends_on_secret(self):
        """Test a different secret gives a different signature."""
        other = Credentials(key="abc", secret="other")

        assert sign(CREDENTIALS, "payload") != sign(other, "payload")

    def test_injectable_digest(self):
        """Test the hash function can be replaced."""
        signature = sign(CREDENTIALS, "payload", hashlib.sha256)

        assert signature == hmac.new(b"xyz", b"payload", hashlib.sha256).hexdigest()


# ============================================================
# SCHEME TESTS
# ============================================================

class TestCurrentScheme:
    """Tests for the v2 signing scheme."""

    def test_envelope_and_headers(self):
        """Test envelope layout and header values."""
        scheme = CurrentScheme()

        payload = scheme.sign_request(CREDENTIALS, "/v2/auth/r/wallets", 1234567890, {})

        assert payload.envelope == "/api/v2/auth/r/wallets1234567890{}"
        assert payload.body == "{}"
        assert payload.headers == {
            "bfx-nonce": "1234567890",
            "bfx-apikey": "abc",
            "bfx-signature": expected_signature("xyz", payload.envelope),
        }

    def test_body_is_signed_verbatim(self):
        """Test the signed body equals the transmitted body."""
        scheme = CurrentScheme()
        params = {"type": "price", "symbol": "tBTCUSD", "price": "500"}

        payload = scheme.sign_request(CREDENTIALS, "/v2/auth/w/alert/set", 7, params)

        assert payload.body == '{"type":"price","symbol":"tBTCUSD","price":"500"}'
        assert payload.envelope == f"/api/v2/auth/w/alert/set7{payload.body}"

    def test_secret_not_in_output(self):
        """Test the secret never leaves the HMAC."""
        credentials = Credentials(key="public", secret="very-secret-value")
        payload = CurrentScheme().sign_request(credentials, "/v2/auth/r/orders", 1, {})

        assert "very-secret-value" not in payload.envelope
        assert "very-secret-value" not in json.dumps(payload.headers)


class TestLegacyScheme:
    """Tests for the v1 signing scheme."""

    def test_payload_document(self):
        """Test the base64 payload decodes to the expected document."""
        scheme = LegacyScheme()

        payload = scheme.sign_request(CREDENTIALS, "/v1/order/new", 42, {"symbol": "btcusd"})
        document = base64.b64decode(payload.headers["X-BFX-PAYLOAD"]).decode()

        assert document == '{"request":"/v1/order/new","nonce":"42","symbol":"btcusd"}'

    def test_signature_over_base64(self):
        """Test the base64 string, not the JSON, is signed."""
        payload = LegacyScheme().sign_request(CREDENTIALS, "/v1/account_infos", 1, {})

        assert payload.headers["X-BFX-APIKEY"] == "abc"
        assert payload.headers["X-BFX-SIGNATURE"] == expected_signature(
            "xyz", payload.headers["X-BFX-PAYLOAD"]
        )
        assert payload.envelope == payload.headers["X-BFX-PAYLOAD"]

    def test_no_body(self):
        """Test legacy calls carry everything in headers."""
        payload = LegacyScheme().sign_request(CREDENTIALS, "/v1/account_infos", 1, {})

        assert payload.body is None


class TestSchemeRegistry:
    """Tests for get_signing_scheme."""

    def test_version_mapping(self):
        """Test each version maps to its scheme."""
        assert isinstance(get_signing_scheme(ApiVersion.CURRENT), CurrentScheme)
        assert isinstance(get_signing_scheme(ApiVersion.LEGACY), LegacyScheme)

    def test_unknown_version(self):
        """Test a non-version value is rejected."""
        with pytest.raises(ValueError, match="No signing scheme"):
            get_signing_scheme("3")


class TestCredentials:
    """Tests for Credentials."""

    def test_repr_hides_secret(self):
        """Test repr does not show the secret."""
        credentials = Credentials(key="k", secret="hidden-secret")

        assert "hidden-secret" not in repr(credentials)
        assert "k" in repr(credentials)

    def test_empty_rejected(self):
        """Test empty key or secret."""
        with pytest.raises(ValueError):
            Credentials(key="", secret="s")
        with pytest.raises(ValueError):
            Credentials(key="k", secret="")
