"""
In-memory TTL cache for balance reads.

Entries are keyed by ``(user_id, kind)``. A secondary index of keys per
user backs ``clear_user`` so a mutating operation can drop everything a
user has cached without scanning the whole store.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Optional, Set, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0
SWEEP_INTERVAL_SECONDS = 60.0


class CacheKind(str, Enum):
    BALANCES = "balances"
    SOL_BALANCE = "sol_balance"
    GATE = "gate"


CacheKey = Tuple[Hashable, str]


class BalanceCache:
    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[Any, float]] = {}  # key -> (value, expires_at)
        self._user_keys: Dict[Hashable, Set[CacheKey]] = {}
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def key(user_id: Hashable, kind: str) -> CacheKey:
        return (user_id, kind.value if isinstance(kind, CacheKind) else str(kind))

    def get(self, key: CacheKey) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            self._remove(key)
            return None
        return value

    def set(self, key: CacheKey, value: Any, ttl: Optional[float] = None):
        """Store a value, overwriting any existing entry."""
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, self._clock() + ttl)
        self._user_keys.setdefault(key[0], set()).add(key)

    def delete(self, key: CacheKey):
        self._remove(key)

    def clear_user(self, user_id: Hashable):
        """Drop every entry cached for a user."""
        for key in self._user_keys.pop(user_id, set()):
            self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()
        self._user_keys.clear()

    def sweep(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            self._remove(key)
        if expired:
            logger.debug(f"Balance cache sweep removed {len(expired)} entries")
        return len(expired)

    def stats(self) -> dict:
        return {
            "size": len(self._entries),
            "keys": [f"{user_id}:{kind}" for user_id, kind in self._entries],
        }

    def _remove(self, key: CacheKey):
        if self._entries.pop(key, None) is None:
            return
        keys = self._user_keys.get(key[0])
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._user_keys[key[0]]

    # =========================================================================
    # BACKGROUND SWEEP
    # =========================================================================

    async def start(self):
        """Start the periodic expiry sweep."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _sweep_loop(self):
        while self._running:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
