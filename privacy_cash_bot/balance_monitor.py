"""
Balance monitor.
Polls every user with notifications enabled and sends a Telegram alert
when any public or private balance changes.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Set

from .balance_service import BalanceService
from .formatting import format_balance_change
from .models import SOL_SYMBOL, SUPPORTED_TOKENS, BalanceSnapshot
from .wallet_service import WalletService

logger = logging.getLogger(__name__)

ALERT_HEADER = "🔔 **Balance Alert**"


def diff_snapshots(previous: BalanceSnapshot, current: BalanceSnapshot) -> List[str]:
    """Change lines for every field whose base-unit amount differs."""
    changes = []
    sol_decimals = SUPPORTED_TOKENS[SOL_SYMBOL].decimals

    if current.sol.private != previous.sol.private:
        changes.append(format_balance_change("SOL (Private)", previous.sol.private, current.sol.private, sol_decimals))
    if current.sol.public != previous.sol.public:
        changes.append(format_balance_change("SOL (Public)", previous.sol.public, current.sol.public, sol_decimals))

    for symbol, info in SUPPORTED_TOKENS.items():
        if symbol == SOL_SYMBOL:
            continue
        curr = current.tokens.get(symbol)
        prev = previous.tokens.get(symbol)
        if curr is None or prev is None:
            continue

        if curr.private != prev.private:
            changes.append(format_balance_change(f"{symbol} (Private)", prev.private, curr.private, info.decimals))
        if curr.public != prev.public:
            changes.append(format_balance_change(f"{symbol} (Public)", prev.public, curr.public, info.decimals))

    return changes


def build_alert(changes: List[str]) -> str:
    return f"{ALERT_HEADER}\n\n" + "\n\n".join(changes)


class BalanceMonitor:
    def __init__(
        self,
        balance_service: BalanceService,
        wallet_service: WalletService,
        notifier=None,
        interval_seconds: float = 300,  # 5 minutes default
        user_delay: float = 1.0,
    ):
        self.balances = balance_service
        self.wallets = wallet_service
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.user_delay = user_delay
        self._previous: Dict[int, BalanceSnapshot] = {}
        self._sweep_lock = asyncio.Lock()
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._sweeps: Set[asyncio.Task] = set()

    def set_notifier(self, notifier):
        """Set the notification sink after initialization."""
        self.notifier = notifier

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """Start polling. The first sweep runs immediately."""
        if self._running:
            logger.warning("Balance monitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Balance monitor started (interval: {self.interval_seconds}s)")

    async def stop(self):
        """Stop polling and cancel any sweep in progress."""
        if not self._running:
            return
        self._running = False
        tasks = [t for t in [self._task, *self._sweeps] if t]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Balance monitor stopped")

    async def _run_loop(self):
        while self._running:
            sweep = asyncio.create_task(self.check_all_balances())
            self._sweeps.add(sweep)
            sweep.add_done_callback(self._sweeps.discard)
            await asyncio.sleep(self.interval_seconds)

    async def check_all_balances(self) -> bool:
        """
        Check every monitored user once, one user at a time.

        Returns False if a previous sweep was still in progress and this one
        was skipped.
        """
        if self._sweep_lock.locked():
            logger.info("Balance check already in progress, skipping...")
            return False

        async with self._sweep_lock:
            try:
                users = await self.wallets.get_monitored_users()
            except Exception as e:
                logger.error(f"Could not load monitored users: {e}", exc_info=True)
                return True

            logger.info(f"Checking balances for {len(users)} monitored users")
            for user in users:
                if not user.monitoring_enabled:
                    continue
                try:
                    await self.check_user_balance(user.user_id)
                except Exception as e:
                    logger.error(f"Error checking balance for user {user.user_id}: {e}")
                # Throttle upstream requests between users
                await asyncio.sleep(self.user_delay)
        return True

    async def check_user_balance(self, user_id: int) -> List[str]:
        """Diff the user's balances against the last check and notify on changes."""
        current = await self.balances.get_balances(user_id)
        if current is None:
            return []

        previous = self._previous.get(user_id)
        self._previous[user_id] = current
        if previous is None:
            # First observation is the baseline
            return []

        changes = diff_snapshots(previous, current)
        if changes and self.notifier is not None:
            try:
                await self.notifier.send_message(user_id, build_alert(changes))
                logger.info(f"Sent balance alert to {user_id} ({len(changes)} changes)")
            except Exception as e:
                logger.error(f"Failed to send notification to {user_id}: {e}")
        return changes

    async def refresh_user_balance(self, user_id: int):
        """Re-baseline a user after a transaction so it isn't reported as a change."""
        balances = await self.balances.get_balances(user_id, force_refresh=True)
        if balances is not None:
            self._previous[user_id] = balances

    def clear_user_balance(self, user_id: int):
        self._previous.pop(user_id, None)

    def get_previous_balance(self, user_id: int) -> Optional[BalanceSnapshot]:
        return self._previous.get(user_id)
