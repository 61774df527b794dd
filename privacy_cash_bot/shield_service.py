"""
Shield (deposit) and unshield (withdraw) operations via Privacy Cash.

Every successful operation invalidates the user's cached balances and, when
a monitor is attached, re-baselines it so the transaction itself is not
reported as a detected change.
"""
import logging
from decimal import Decimal
from typing import Optional, Union

from .balance_service import BalanceService
from .formatting import tokens_to_base_units
from .models import SOL_SYMBOL, SUPPORTED_TOKENS, OperationResult
from .wallet_service import WalletService

logger = logging.getLogger(__name__)

Amount = Union[int, float, Decimal, str]


class ShieldService:
    def __init__(self, wallet_service: WalletService, balance_service: BalanceService, monitor=None):
        self.wallets = wallet_service
        self.balances = balance_service
        self.monitor = monitor

    def set_monitor(self, monitor):
        """Set balance monitor reference after initialization."""
        self.monitor = monitor

    async def deposit_sol(self, user_id: int, amount_sol: Amount) -> OperationResult:
        client = await self.wallets.get_client(user_id)
        if not client:
            return OperationResult(success=False, error="Wallet not connected")

        lamports = tokens_to_base_units(amount_sol, SUPPORTED_TOKENS[SOL_SYMBOL].decimals)
        try:
            result = await client.deposit(lamports)
        except Exception as e:
            logger.error(f"SOL deposit failed for {user_id}: {e}")
            return OperationResult(success=False, error=str(e) or "Deposit failed")

        await self._after_success(user_id)
        return OperationResult(success=True, signature=result.get("tx"))

    async def withdraw_sol(
        self,
        user_id: int,
        amount_sol: Amount,
        recipient: Optional[str] = None,
    ) -> OperationResult:
        client = await self.wallets.get_client(user_id)
        if not client:
            return OperationResult(success=False, error="Wallet not connected")

        lamports = tokens_to_base_units(amount_sol, SUPPORTED_TOKENS[SOL_SYMBOL].decimals)
        try:
            result = await client.withdraw(lamports, recipient)
        except Exception as e:
            logger.error(f"SOL withdrawal failed for {user_id}: {e}")
            return OperationResult(success=False, error=str(e) or "Withdrawal failed")

        await self._after_success(user_id)
        return OperationResult(
            success=True,
            signature=result.get("tx"),
            amount=result.get("amount_in_lamports"),
            fee=result.get("fee_in_lamports"),
        )

    async def deposit_spl(self, user_id: int, symbol: str, amount: Amount) -> OperationResult:
        client = await self.wallets.get_client(user_id)
        if not client:
            return OperationResult(success=False, error="Wallet not connected")

        token = SUPPORTED_TOKENS.get(symbol)
        if token is None or symbol == SOL_SYMBOL:
            return OperationResult(success=False, error="Invalid token")

        base_units = tokens_to_base_units(amount, token.decimals)
        try:
            result = await client.deposit_spl(base_units, token.mint_address)
        except Exception as e:
            logger.error(f"{symbol} deposit failed for {user_id}: {e}")
            return OperationResult(success=False, error=str(e) or "Deposit failed")

        await self._after_success(user_id)
        return OperationResult(success=True, signature=result.get("tx"))

    async def withdraw_spl(
        self,
        user_id: int,
        symbol: str,
        amount: Amount,
        recipient: Optional[str] = None,
    ) -> OperationResult:
        client = await self.wallets.get_client(user_id)
        if not client:
            return OperationResult(success=False, error="Wallet not connected")

        token = SUPPORTED_TOKENS.get(symbol)
        if token is None or symbol == SOL_SYMBOL:
            return OperationResult(success=False, error="Invalid token")

        base_units = tokens_to_base_units(amount, token.decimals)
        try:
            result = await client.withdraw_spl(base_units, token.mint_address, recipient)
        except Exception as e:
            logger.error(f"{symbol} withdrawal failed for {user_id}: {e}")
            return OperationResult(success=False, error=str(e) or "Withdrawal failed")

        await self._after_success(user_id)
        return OperationResult(
            success=True,
            signature=result.get("tx"),
            amount=result.get("amount"),
            fee=result.get("fee"),
        )

    async def _after_success(self, user_id: int):
        self.balances.invalidate_cache(user_id)
        if self.monitor is None:
            return
        try:
            await self.monitor.refresh_user_balance(user_id)
        except Exception as e:
            logger.warning(f"Could not refresh monitored balance for {user_id}: {e}")
