"""
Bitfinex Client - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the client.

CRITICAL CONSTRAINTS:
- Credentials only come from explicit arguments or environment
- No blind retries
- Base address never auto-corrected

============================================================
USAGE
============================================================
```python
# Explicit
config = ClientConfig(api_key="...", api_secret="...")

# From environment / .env
config = ClientConfig.from_env()
```

============================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .types import Credentials


DEFAULT_BASE_ADDRESS = "https://api.bitfinex.com"
DEFAULT_TIMEOUT_SECONDS = 30.0


# ============================================================
# CLIENT CONFIGURATION
# ============================================================

@dataclass
class ClientConfig:
    """
    Configuration for BitfinexClient.
    """

    base_address: str = DEFAULT_BASE_ADDRESS
    """Base address, without trailing slash."""

    # Credentials (None for public-only use)
    api_key: Optional[str] = None
    api_secret: Optional[str] = None

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    """Default per-call timeout."""

    def __post_init__(self) -> None:
        if self.base_address.endswith("/"):
            raise ValueError(
                f"base_address must not end with '/': {self.base_address}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def credentials(self) -> Optional[Credentials]:
        """Build Credentials, or None when not configured."""
        if not self.has_credentials:
            return None
        return Credentials(key=self.api_key, secret=self.api_secret)

    @classmethod
    def from_env(cls, prefix: str = "BITFINEX") -> "ClientConfig":
        """
        Create config from environment variables.

        Loads a ``.env`` file first if one is present.

        Args:
            prefix: Variable prefix (e.g. BITFINEX_API_KEY)

        Returns:
            ClientConfig
        """
        load_dotenv()
        prefix = prefix.upper()

        timeout = os.environ.get(f"{prefix}_TIMEOUT_SECONDS")

        return cls(
            base_address=os.environ.get(f"{prefix}_BASE_ADDRESS", DEFAULT_BASE_ADDRESS),
            api_key=os.environ.get(f"{prefix}_API_KEY"),
            api_secret=os.environ.get(f"{prefix}_API_SECRET"),
            timeout_seconds=float(timeout) if timeout else DEFAULT_TIMEOUT_SECONDS,
        )
