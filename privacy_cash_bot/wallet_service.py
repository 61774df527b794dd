"""
Wallet registry: which Telegram user owns which wallet, and the Privacy Cash
handle used to read and move that wallet's shielded funds.
"""
import logging
from typing import Dict, List, Optional

from .database import DatabaseService
from .models import MonitoredUser
from .privacy_cash import PrivacyCashClient, PrivacyCashWallet

logger = logging.getLogger(__name__)


class WalletService:
    def __init__(self, db_service: DatabaseService, privacy_cash: PrivacyCashClient):
        self.db = db_service
        self.privacy_cash = privacy_cash
        self._clients: Dict[int, PrivacyCashWallet] = {}

    async def has_wallet(self, user_id: int) -> bool:
        return await self.db.get_wallet(user_id) is not None

    async def get_wallet(self, user_id: int) -> Optional[dict]:
        return await self.db.get_wallet(user_id)

    async def get_client(self, user_id: int, wallet: Optional[dict] = None) -> Optional[PrivacyCashWallet]:
        """Privacy Cash handle for the user's wallet, or None without a wallet."""
        client = self._clients.get(user_id)
        if client is not None:
            return client

        wallet = wallet or await self.db.get_wallet(user_id)
        if not wallet or not wallet.get("wallet_id"):
            return None

        client = self.privacy_cash.for_wallet(wallet["wallet_id"])
        self._clients[user_id] = client
        return client

    async def connect_wallet(
        self,
        user_id: int,
        wallet_address: str,
        wallet_id: str,
        tg_username: Optional[str] = None,
    ) -> dict:
        """Link a wallet to the user, replacing any previous one."""
        self._clients.pop(user_id, None)
        return await self.db.save_wallet(user_id, wallet_address, wallet_id, tg_username=tg_username)

    async def disconnect_wallet(self, user_id: int) -> bool:
        self._clients.pop(user_id, None)
        removed = await self.db.delete_wallet(user_id)
        if removed:
            logger.info(f"Disconnected wallet for {user_id}")
        return removed

    async def toggle_monitoring(self, user_id: int, enabled: bool) -> bool:
        return await self.db.set_monitoring(user_id, enabled)

    async def get_monitored_users(self) -> List[MonitoredUser]:
        wallets = await self.db.get_monitored_wallets()
        return [
            MonitoredUser(user_id=w["tg_user_id"], monitoring_enabled=True)
            for w in wallets
        ]
