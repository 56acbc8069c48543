"""Short-lived cache of successful liveness checks.

Entries are looked up by a prefix of the credential value (plus provider id)
and expire lazily. Each entry also remembers a SHA-256 digest of the full
value; a different secret that happens to share the prefix is a miss.
"""

import hashlib
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from credvault.types import LivenessResult, LivenessStatus

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    digest: str
    result: LivenessResult
    expires_at: float


class ValidationCache:
    """Process-local TTL cache for :class:`LivenessResult` objects."""

    def __init__(
        self,
        ttl_seconds: float = 300,
        prefix_length: int = 10,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.prefix_length = prefix_length
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    def _key(self, provider_id: str, value: str) -> str:
        return f"{provider_id}:{value[:self.prefix_length]}"

    @staticmethod
    def _digest(value: str) -> str:
        return hashlib.sha256(value.encode()).hexdigest()

    def get(self, provider_id: str, value: str) -> Optional[LivenessResult]:
        key = self._key(provider_id, value)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        if entry.digest != self._digest(value):
            return None
        return entry.result

    def put(self, provider_id: str, value: str, result: LivenessResult) -> None:
        """Remember *result*. Only VALID results are cached."""
        if result.status != LivenessStatus.VALID:
            return
        key = self._key(provider_id, value)
        self._entries.pop(key, None)
        self._entries[key] = _Entry(
            digest=self._digest(value),
            result=result,
            expires_at=self._clock() + self.ttl_seconds,
        )
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, provider_id: str, value: str) -> None:
        self._entries.pop(self._key(provider_id, value), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
