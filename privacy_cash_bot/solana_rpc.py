"""
Solana account reader for native SOL and SPL token balances.
"""
import logging
from typing import Optional

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from .errors import RpcError, TokenAccountNotFound

logger = logging.getLogger(__name__)

ACCOUNT_NOT_FOUND = "could not find account"


def _status_code(error: BaseException) -> Optional[int]:
    """HTTP status behind a transport failure, if there was a response."""
    cause = error.__cause__
    if isinstance(cause, httpx.HTTPStatusError):
        return cause.response.status_code
    return None


class SolanaRpcClient:
    def __init__(self, rpc_url: str, timeout: float = 10.0, client: Optional[AsyncClient] = None):
        self.rpc_url = rpc_url
        self._client = client or AsyncClient(rpc_url, commitment=Confirmed, timeout=timeout)

    async def close(self):
        await self._client.close()

    async def get_balance(self, address: str) -> int:
        """Native SOL balance in lamports."""
        try:
            resp = await self._client.get_balance(Pubkey.from_string(address), commitment=Confirmed)
        except RPCException as e:
            raise RpcError(f"getBalance error: {e}") from e
        except SolanaRpcException as e:
            raise RpcError(f"getBalance failed: {e}", status_code=_status_code(e)) from e
        return int(resp.value)

    async def get_token_account_balance(self, token_account: Pubkey) -> int:
        try:
            resp = await self._client.get_token_account_balance(token_account, commitment=Confirmed)
        except RPCException as e:
            if ACCOUNT_NOT_FOUND in str(e).lower():
                raise TokenAccountNotFound(str(e)) from e
            raise RpcError(f"getTokenAccountBalance error: {e}") from e
        except SolanaRpcException as e:
            raise RpcError(f"getTokenAccountBalance failed: {e}", status_code=_status_code(e)) from e
        return int(resp.value.amount)

    async def get_token_balance(self, mint: str, owner: str) -> int:
        """
        Public SPL token balance for an owner, in base units.

        A token account that was never created counts as a zero balance.
        """
        ata = get_associated_token_address(Pubkey.from_string(owner), Pubkey.from_string(mint))
        try:
            return await self.get_token_account_balance(ata)
        except TokenAccountNotFound:
            logger.debug(f"No token account for {mint[:8]}... owned by {owner[:8]}...")
            return 0
