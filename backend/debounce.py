import math
import threading
from datetime import datetime
from typing import Protocol

from backend.config import SCAN_COOLDOWN_SECONDS


class DebounceStore(Protocol):
    """Key-value store with per-key expiry used to remember accepted taps."""

    def get(self, key: str) -> float | None: ...

    def set(self, key: str, value: float, ttl_seconds: float) -> None: ...


class InMemoryDebounceStore:
    """
    Process-local store; each running instance debounces on its own.

    Expiry is measured in the same time base as the stored values, so the
    store never forgets an entry earlier than the caller's clock says.
    """

    def __init__(self):
        self._entries: dict[str, tuple[float, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> float | None:
        with self._lock:
            entry = self._entries.get(key)
            return entry[0] if entry is not None else None

    def set(self, key: str, value: float, ttl_seconds: float) -> None:
        with self._lock:
            expired = [k for k, (_, exp) in self._entries.items() if exp <= value]
            for k in expired:
                self._entries.pop(k, None)
            self._entries[key] = (value, value + ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class Debouncer:
    def __init__(self, cooldown_seconds: float = SCAN_COOLDOWN_SECONDS, store: DebounceStore | None = None):
        self.cooldown_seconds = cooldown_seconds
        self.store = store if store is not None else InMemoryDebounceStore()
        self._lock = threading.Lock()

    def accept(self, tag_id: str, now: datetime | float) -> bool:
        """Record the tap and return True, or return False inside the cooldown."""
        stamp = _as_seconds(now)
        with self._lock:
            last = self.store.get(tag_id)
            if last is not None and stamp - last < self.cooldown_seconds:
                return False
            self.store.set(tag_id, stamp, self.cooldown_seconds)
            return True

    def retry_after(self, tag_id: str, now: datetime | float) -> int:
        last = self.store.get(tag_id)
        if last is None:
            return 0
        remaining = self.cooldown_seconds - (_as_seconds(now) - last)
        return max(0, math.ceil(remaining))


def _as_seconds(value: datetime | float) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)
