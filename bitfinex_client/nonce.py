"""
Bitfinex Client - Nonce Generator.

Nonces are milliseconds since the Unix epoch scaled by 10. The
exchange rejects a signed call whose nonce does not exceed the last
one it accepted for the key, so one generator is shared by every
signed call made with a credential set.
"""

import threading
import time
from typing import Callable, Optional


NONCE_SCALE = 10


class NonceGenerator:
    """
    Thread-safe, strictly increasing nonce source.

    Values follow the wall clock at 1/10 ms resolution. Two calls in
    the same tick, or a clock that steps backwards, still get
    increasing values: the generator never returns less than
    ``last + 1``.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Args:
            clock: Returns seconds since the epoch (injectable for tests)
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._last: Optional[int] = None

    @property
    def last(self) -> Optional[int]:
        """Last value handed out, or None."""
        return self._last

    def _candidate(self) -> int:
        return int(round(self._clock() * 1000 * NONCE_SCALE))

    def next(self) -> int:
        """Return the next nonce."""
        with self._lock:
            value = self._candidate()
            if self._last is not None and value <= self._last:
                value = self._last + 1
            self._last = value
            return value
