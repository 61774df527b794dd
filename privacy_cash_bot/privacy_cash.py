"""
HTTP client for the Privacy Cash shielded-balance service.

All proof generation and transaction building happens server-side; this
module only forwards requests for a given wallet and maps the responses.
"""
import logging
from typing import Optional

import httpx

from .errors import ShieldingError

logger = logging.getLogger(__name__)


class PrivacyCashClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self._client.aclose()

    def for_wallet(self, wallet_id: str) -> "PrivacyCashWallet":
        return PrivacyCashWallet(self, wallet_id)

    async def request(self, path: str, payload: dict, allow_missing: bool = False) -> Optional[dict]:
        """
        POST to the service and return the ``data`` object.

        With ``allow_missing`` a 404 returns None instead of raising.
        """
        try:
            response = await self._client.post(
                f"{self.base_url}{path}",
                json=payload,
                headers={"X-API-KEY": self.api_key or ""},
            )
        except httpx.TimeoutException as e:
            raise ShieldingError(f"Privacy Cash {path} timed out") from e
        except httpx.HTTPError as e:
            raise ShieldingError(f"Privacy Cash {path} failed: {e}") from e

        if response.status_code == 404 and allow_missing:
            return None
        if response.status_code != 200:
            raise ShieldingError(
                f"Privacy Cash {path} HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        data = response.json()
        if data.get("status") == "error":
            raise ShieldingError(data.get("message") or f"Privacy Cash {path} failed")
        return data.get("data") or {}


class PrivacyCashWallet:
    """Privacy Cash operations bound to one user's wallet."""

    def __init__(self, client: PrivacyCashClient, wallet_id: str):
        self.client = client
        self.wallet_id = wallet_id

    async def get_private_balance(self) -> int:
        """Shielded SOL balance in lamports."""
        data = await self.client.request("/balance", {"wallet_id": self.wallet_id}, allow_missing=True)
        if not data:
            return 0
        return int(data.get("lamports", 0))

    async def get_private_balance_spl(self, mint: str) -> int:
        """Shielded SPL balance in base units; 0 when nothing was ever shielded."""
        data = await self.client.request(
            "/balance",
            {"wallet_id": self.wallet_id, "mint": mint},
            allow_missing=True,
        )
        if not data:
            return 0
        return int(data.get("amount", 0))

    async def deposit(self, lamports: int) -> dict:
        return await self.client.request("/deposit", {"wallet_id": self.wallet_id, "lamports": lamports})

    async def withdraw(self, lamports: int, recipient: Optional[str] = None) -> dict:
        payload = {"wallet_id": self.wallet_id, "lamports": lamports}
        if recipient:
            payload["recipient"] = recipient
        return await self.client.request("/withdraw", payload)

    async def deposit_spl(self, amount: int, mint: str) -> dict:
        return await self.client.request(
            "/deposit",
            {"wallet_id": self.wallet_id, "amount": amount, "mint": mint},
        )

    async def withdraw_spl(self, amount: int, mint: str, recipient: Optional[str] = None) -> dict:
        payload = {"wallet_id": self.wallet_id, "amount": amount, "mint": mint}
        if recipient:
            payload["recipient"] = recipient
        return await self.client.request("/withdraw", payload)
