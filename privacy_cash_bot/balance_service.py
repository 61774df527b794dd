"""
Balance reads for chat users.

Reads go through the TTL cache first; misses and forced refreshes are run
through the request queue so one user never has two upstream reads in
flight at once and the RPC / Privacy Cash endpoints see bounded load.
"""
import asyncio
import logging
from typing import Optional

from .balance_cache import BalanceCache, CacheKind
from .models import BalancePair, BalanceSnapshot, spl_tokens
from .request_queue import RequestQueue
from .solana_rpc import SolanaRpcClient
from .wallet_service import WalletService

logger = logging.getLogger(__name__)

BALANCES_PRIORITY = 1
FAST_BALANCE_PRIORITY = 2
FAST_BALANCE_TTL_SECONDS = 15.0


class BalanceService:
    def __init__(
        self,
        wallets: WalletService,
        rpc: SolanaRpcClient,
        cache: BalanceCache,
        queue: RequestQueue,
        fast_balance_ttl: float = FAST_BALANCE_TTL_SECONDS,
    ):
        self.wallets = wallets
        self.rpc = rpc
        self.cache = cache
        self.queue = queue
        self.fast_balance_ttl = fast_balance_ttl

    async def get_balances(self, user_id: int, force_refresh: bool = False) -> Optional[BalanceSnapshot]:
        """
        Public and private balances for SOL and every supported token.

        Args:
            user_id: Telegram user ID
            force_refresh: Skip the cache and read upstream

        Returns:
            BalanceSnapshot, or None if the user has no wallet.
            SOL read failures propagate; token read failures become zero.
        """
        cache_key = BalanceCache.key(user_id, CacheKind.BALANCES)

        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Using cached balance for user {user_id}")
                return cached

        async def fetch() -> Optional[BalanceSnapshot]:
            # Another caller may have filled the cache while this one waited
            if not force_refresh:
                cached = self.cache.get(cache_key)
                if cached is not None:
                    return cached

            wallet = await self.wallets.get_wallet(user_id)
            client = await self.wallets.get_client(user_id, wallet) if wallet else None
            if not wallet or not client:
                return None

            owner = wallet["wallet_address"]
            public_sol, private_sol = await asyncio.gather(
                self.rpc.get_balance(owner),
                client.get_private_balance(),
            )

            tokens = spl_tokens()
            pairs = await asyncio.gather(
                *(self._fetch_token(client, user_id, owner, symbol, info.mint_address) for symbol, info in tokens.items())
            )
            token_balances = dict(zip(tokens, pairs))

            snapshot = BalanceSnapshot(
                sol=BalancePair(public=public_sol, private=private_sol),
                tokens=token_balances,
            )
            self.cache.set(cache_key, snapshot)
            logger.debug(f"Cached balance for user {user_id}")
            return snapshot

        return await self.queue.enqueue(user_id, fetch, priority=BALANCES_PRIORITY)

    async def _fetch_token(self, client, user_id: int, owner: str, symbol: str, mint: str) -> BalancePair:
        """Public and private reads fail independently; a failed side reads as zero."""
        public, private = await asyncio.gather(
            self.rpc.get_token_balance(mint, owner),
            client.get_private_balance_spl(mint),
            return_exceptions=True,
        )
        if isinstance(public, Exception):
            logger.warning(f"Error getting {symbol} balance for user {user_id}: {public}")
            public = 0
        if isinstance(private, Exception):
            logger.warning(f"Error getting private {symbol} balance for user {user_id}: {private}")
            private = 0
        return BalancePair(public=public, private=private)

    async def get_fast_balance(self, user_id: int) -> Optional[BalancePair]:
        """SOL-only public/private balance, for quick fee checks."""
        cache_key = BalanceCache.key(user_id, CacheKind.SOL_BALANCE)

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        async def fetch() -> Optional[BalancePair]:
            wallet = await self.wallets.get_wallet(user_id)
            client = await self.wallets.get_client(user_id, wallet) if wallet else None
            if not wallet or not client:
                return None

            public_sol, private_sol = await asyncio.gather(
                self.rpc.get_balance(wallet["wallet_address"]),
                client.get_private_balance(),
            )
            result = BalancePair(public=public_sol, private=private_sol)
            self.cache.set(cache_key, result, ttl=self.fast_balance_ttl)
            return result

        return await self.queue.enqueue(user_id, fetch, priority=FAST_BALANCE_PRIORITY)

    def invalidate_cache(self, user_id: int):
        """Drop cached reads for a user. Call after every deposit / withdraw."""
        self.cache.clear_user(user_id)

    def forget_user(self, user_id: int):
        """Drop cached reads and queued requests for a user (wallet disconnected)."""
        self.cache.clear_user(user_id)
        self.queue.clear_user(user_id)
