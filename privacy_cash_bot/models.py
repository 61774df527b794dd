"""
Token configuration, balance models and MongoDB documents for the Privacy Cash bot.
"""
from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field


# =============================================================================
# SUPPORTED TOKENS
# =============================================================================

class TokenInfo(BaseModel):
    name: str
    symbol: str
    decimals: int
    mint_address: str


SOL_SYMBOL = "SOL"

SUPPORTED_TOKENS: Dict[str, TokenInfo] = {
    "SOL": TokenInfo(
        name="SOL",
        symbol="SOL",
        decimals=9,
        mint_address="So11111111111111111111111111111111111111112",
    ),
    "USDC": TokenInfo(
        name="USD Coin",
        symbol="USDC",
        decimals=6,
        mint_address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    ),
    "USDT": TokenInfo(
        name="Tether USD",
        symbol="USDT",
        decimals=6,
        mint_address="Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    ),
    "ZEC": TokenInfo(
        name="Zcash",
        symbol="ZEC",
        decimals=8,
        mint_address="A7bdiYdS5GjqGFtxf17ppRHtDKPkkRqbKtR27dxvQXaS",
    ),
    "ORE": TokenInfo(
        name="Ore",
        symbol="ORE",
        decimals=11,
        mint_address="oreoU2P8bN6jkk3jbaiVxYnG1dCXcYxwhwyK9jSybcp",
    ),
    "STORE": TokenInfo(
        name="Store",
        symbol="STORE",
        decimals=11,
        mint_address="sTorERYB6xAZ1SSbwpK3zoK2EEwbBrc7TZAzg1uCGiH",
    ),
}


def spl_tokens() -> Dict[str, TokenInfo]:
    """All supported tokens except native SOL."""
    return {symbol: info for symbol, info in SUPPORTED_TOKENS.items() if symbol != SOL_SYMBOL}


def parse_token_symbol(value: str) -> Optional[str]:
    """Normalize user input to a supported token symbol, or None."""
    if not value:
        return None
    symbol = value.strip().upper()
    return symbol if symbol in SUPPORTED_TOKENS else None


# =============================================================================
# BALANCE MODELS (amounts are integer base units)
# =============================================================================

class BalancePair(BaseModel):
    public: int = Field(default=0, ge=0)
    private: int = Field(default=0, ge=0)


class BalanceSnapshot(BaseModel):
    sol: BalancePair
    tokens: Dict[str, BalancePair] = Field(default_factory=dict)


class MonitoredUser(BaseModel):
    user_id: int
    monitoring_enabled: bool = False


class OperationResult(BaseModel):
    """Outcome of a deposit / withdraw call."""
    success: bool
    signature: Optional[str] = None
    amount: Optional[int] = None  # base units actually received
    fee: Optional[int] = None  # base units
    error: Optional[str] = None


class GateResult(BaseModel):
    eligible: bool = False
    balance: float = 0.0  # token units
    error: Optional[str] = None


# =============================================================================
# MONGODB DOCUMENT SCHEMAS
# =============================================================================

def wallet_document(
    tg_user_id: int,
    wallet_address: str,
    wallet_id: str,
    tg_username: Optional[str] = None,
    monitoring_enabled: bool = False,
) -> dict:
    """Create a wallet document for MongoDB."""
    doc = {
        "tg_user_id": tg_user_id,
        "wallet_address": wallet_address,
        "wallet_id": wallet_id,
        "tg_username": None,
        "monitoring_enabled": monitoring_enabled,
        "created_at": datetime.utcnow(),
    }

    if tg_username:
        doc["tg_username"] = tg_username

    return doc
