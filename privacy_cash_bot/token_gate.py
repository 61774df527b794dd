"""
Token-holder gate.

Checks whether a user holds at least a minimum public balance of the gate
token. Privacy Cash rate-limits balance reads, so 429 responses are
retried with linear backoff and results are cached per user.
"""
import asyncio
import logging

from .balance_cache import BalanceCache, CacheKind
from .balance_service import BalanceService
from .errors import is_rate_limited
from .formatting import base_units_to_tokens
from .models import SUPPORTED_TOKENS, GateResult

logger = logging.getLogger(__name__)

CACHE_TTL_SUCCESS = 2 * 60  # 2 minutes
CACHE_TTL_ERROR = 10  # 10 seconds for errors
BACKOFF_SECONDS = 0.5


class TokenGate:
    def __init__(
        self,
        balance_service: BalanceService,
        cache: BalanceCache,
        token_symbol: str,
        min_amount: float = 1_000_000,
        max_attempts: int = 3,
    ):
        self.balances = balance_service
        self.cache = cache
        self.token_symbol = token_symbol.upper()
        self.min_amount = min_amount
        self.max_attempts = max_attempts

    async def check_eligibility(self, user_id: int) -> GateResult:
        """Whether the user's public gate-token balance reaches ``min_amount``."""
        cache_key = BalanceCache.key(user_id, CacheKind.GATE)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._read(user_id)
                break
            except Exception as e:
                if is_rate_limited(e) and attempt < self.max_attempts:
                    logger.info(f"Rate limited reading gate balance for {user_id}, retry {attempt}")
                    await asyncio.sleep(BACKOFF_SECONDS * attempt)
                    continue
                result = GateResult(error=str(e) or "unknown_error")
                break

        ttl = CACHE_TTL_ERROR if result.error else CACHE_TTL_SUCCESS
        self.cache.set(cache_key, result, ttl=ttl)
        return result

    async def get_gate_balance(self, user_id: int) -> GateResult:
        """Gate-token balance only; shares the eligibility cache."""
        result = await self.check_eligibility(user_id)
        return GateResult(balance=result.balance, error=result.error)

    async def _read(self, user_id: int) -> GateResult:
        balances = await self.balances.get_balances(user_id, force_refresh=True)
        if balances is None:
            return GateResult(error="no_balances")

        info = SUPPORTED_TOKENS.get(self.token_symbol)
        if info is None:
            return GateResult(error="pcb_not_configured")

        entry = balances.tokens.get(self.token_symbol)
        raw_units = entry.public if entry else 0
        balance = float(base_units_to_tokens(raw_units, info.decimals))
        return GateResult(eligible=balance >= self.min_amount, balance=balance)
