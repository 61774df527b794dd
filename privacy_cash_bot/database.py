"""
Database service for MongoDB operations.
Stores the Telegram user -> wallet mapping and monitoring preferences.
"""
import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from privacy_cash_bot.models import wallet_document

logger = logging.getLogger(__name__)


class DatabaseService:
    def __init__(self, mongo_url: str, database_name: str):
        self.client = AsyncIOMotorClient(mongo_url)
        self.db: AsyncIOMotorDatabase = self.client[database_name]

        # Collections
        self.wallets = self.db["wallets"]

    async def setup_indexes(self):
        """Create necessary indexes for performance."""
        await self.wallets.create_index("tg_user_id", unique=True)
        await self.wallets.create_index("monitoring_enabled")

        logger.info("Database indexes created")

    # =========================================================================
    # WALLET OPERATIONS
    # =========================================================================

    async def get_wallet(self, tg_user_id: int) -> Optional[dict]:
        """Get wallet by Telegram user ID."""
        return await self.wallets.find_one({"tg_user_id": tg_user_id})

    async def save_wallet(
        self,
        tg_user_id: int,
        wallet_address: str,
        wallet_id: str,
        tg_username: Optional[str] = None,
    ) -> dict:
        """
        Create or replace the wallet linked to a Telegram user.

        Monitoring starts disabled for a newly linked wallet.
        """
        doc = wallet_document(
            tg_user_id=tg_user_id,
            wallet_address=wallet_address,
            wallet_id=wallet_id,
            tg_username=tg_username,
        )
        await self.wallets.replace_one({"tg_user_id": tg_user_id}, doc, upsert=True)
        logger.info(f"Saved wallet for {tg_user_id}: {wallet_address[:8]}...")
        return doc

    async def delete_wallet(self, tg_user_id: int) -> bool:
        result = await self.wallets.delete_one({"tg_user_id": tg_user_id})
        return result.deleted_count > 0

    async def set_monitoring(self, tg_user_id: int, enabled: bool) -> bool:
        """Enable or disable balance notifications. False if the user has no wallet."""
        result = await self.wallets.update_one(
            {"tg_user_id": tg_user_id},
            {"$set": {"monitoring_enabled": enabled}}
        )
        return result.matched_count > 0

    async def get_monitored_wallets(self) -> list:
        """All wallets with balance notifications enabled."""
        cursor = self.wallets.find({"monitoring_enabled": True})
        return await cursor.to_list(length=None)
