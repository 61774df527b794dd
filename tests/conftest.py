"""
Pytest fixtures and configuration for tests.
"""
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

from privacy_cash_bot.balance_cache import BalanceCache
from privacy_cash_bot.balance_service import BalanceService
from privacy_cash_bot.models import BalancePair, BalanceSnapshot, spl_tokens
from privacy_cash_bot.request_queue import RequestQueue


# =============================================================================
# CLOCK
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return BalanceCache(default_ttl=30, clock=clock)


# =============================================================================
# MOCK DATA
# =============================================================================

@pytest.fixture
def sample_wallet():
    """Sample wallet document."""
    return {
        "tg_user_id": 100,
        "wallet_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "wallet_id": "wallet-abc123",
        "tg_username": "alice",
        "monitoring_enabled": True,
        "created_at": datetime.utcnow(),
    }


@pytest.fixture
def make_snapshot():
    """Build a BalanceSnapshot; tokens not given default to zero."""
    def _make(sol_public: int = 0, sol_private: int = 0, tokens: dict = None) -> BalanceSnapshot:
        token_balances = {symbol: BalancePair() for symbol in spl_tokens()}
        for symbol, (public, private) in (tokens or {}).items():
            token_balances[symbol] = BalancePair(public=public, private=private)
        return BalanceSnapshot(
            sol=BalancePair(public=sol_public, private=sol_private),
            tokens=token_balances,
        )
    return _make


# =============================================================================
# MOCK SERVICES
# =============================================================================

@pytest.fixture
def mock_privacy_wallet():
    """Mock Privacy Cash handle for one wallet."""
    client = MagicMock()
    client.get_private_balance = AsyncMock(return_value=0)
    client.get_private_balance_spl = AsyncMock(return_value=0)
    client.deposit = AsyncMock(return_value={"tx": "sig-deposit"})
    client.withdraw = AsyncMock(return_value={"tx": "sig-withdraw"})
    client.deposit_spl = AsyncMock(return_value={"tx": "sig-deposit-spl"})
    client.withdraw_spl = AsyncMock(return_value={"tx": "sig-withdraw-spl"})
    return client


@pytest.fixture
def mock_wallet_service(sample_wallet, mock_privacy_wallet):
    """Mock wallet registry with one connected wallet."""
    service = MagicMock()
    service.get_wallet = AsyncMock(return_value=sample_wallet)
    service.get_client = AsyncMock(return_value=mock_privacy_wallet)
    service.has_wallet = AsyncMock(return_value=True)
    service.get_monitored_users = AsyncMock(return_value=[])
    return service


@pytest.fixture
def mock_rpc():
    """Mock Solana RPC reader."""
    rpc = MagicMock()
    rpc.get_balance = AsyncMock(return_value=0)
    rpc.get_token_balance = AsyncMock(return_value=0)
    return rpc


@pytest.fixture
def balance_service(mock_wallet_service, mock_rpc, cache):
    return BalanceService(
        mock_wallet_service,
        mock_rpc,
        cache,
        RequestQueue(max_concurrent=3),
        fast_balance_ttl=15,
    )


# =============================================================================
# DATABASE MOCKS
# =============================================================================

@pytest.fixture
def mock_collection():
    """Create a mock MongoDB collection."""
    def _create_collection():
        collection = AsyncMock()
        collection.find_one = AsyncMock(return_value=None)
        collection.replace_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.delete_one = AsyncMock()
        collection.find = MagicMock()
        collection.find.return_value.to_list = AsyncMock(return_value=[])
        collection.create_index = AsyncMock()
        return collection
    return _create_collection


@pytest.fixture
def mock_db_service(mock_collection):
    """Create a mock DatabaseService."""
    from privacy_cash_bot.database import DatabaseService

    with patch.object(DatabaseService, '__init__', lambda self, *args, **kwargs: None):
        service = DatabaseService.__new__(DatabaseService)
        service.wallets = mock_collection()
        service.client = MagicMock()
        service.db = MagicMock()
        return service
