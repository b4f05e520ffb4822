"""Result caches injected into the analyzer."""

import time
from typing import Any, Callable, Protocol

DEFAULT_TTL_SECONDS = 3600.0


class ResultCache(Protocol):
    """Minimal cache interface the analyzer relies on."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def is_valid(self, key: str) -> bool: ...


class TTLCache:
    """In-memory cache whose entries expire ``ttl`` seconds after being set."""

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._ttl = ttl
        self._clock = clock
        self._values: dict[str, Any] = {}
        self._expiry: dict[str, float] = {}

    def get(self, key: str) -> Any:
        """Return a live entry, or None when missing or expired."""
        if not self.is_valid(key):
            self._evict(key)
            return None
        return self._values[key]

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._expiry[key] = self._clock() + self._ttl

    def is_valid(self, key: str) -> bool:
        expiry = self._expiry.get(key)
        return expiry is not None and self._clock() < expiry

    def clear(self) -> None:
        self._values.clear()
        self._expiry.clear()

    def __len__(self) -> int:
        return sum(1 for key in self._expiry if self.is_valid(key))

    def _evict(self, key: str) -> None:
        self._values.pop(key, None)
        self._expiry.pop(key, None)
