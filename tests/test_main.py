"""
Tests for the HTTP endpoints and the app lifespan.

Endpoint tests don't enter the lifespan; lifespan tests patch out the
database, Telegram and the monitor.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from privacy_cash_bot import main
from privacy_cash_bot.balance_cache import BalanceCache


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def patched_services():
    """Lifespan collaborators replaced with mocks; module globals restored afterwards."""
    monitor = MagicMock()
    monitor.start = AsyncMock()
    monitor.stop = AsyncMock()
    bot = MagicMock()
    bot.stop = AsyncMock()

    with patch.object(main.db_service, "setup_indexes", AsyncMock()), \
         patch.object(main.rpc_client, "close", AsyncMock()), \
         patch.object(main.privacy_cash, "close", AsyncMock()), \
         patch.object(main, "BalanceMonitor", MagicMock(return_value=monitor)), \
         patch.object(main, "TelegramBot", MagicMock(return_value=bot)), \
         patch.object(main.shield_service, "monitor", None), \
         patch.object(main, "balance_monitor", None), \
         patch.object(main, "telegram_bot", None), \
         patch.object(main, "bot_task", None):
        yield bot, monitor


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestStatus:
    def test_status_reports_cache_and_queue(self, client):
        main.balance_cache.set(BalanceCache.key(100, "balances"), "snapshot")
        try:
            response = client.get("/status")
        finally:
            main.balance_cache.clear()

        data = response.json()
        assert response.status_code == 200
        assert data["cache"] == {"size": 1, "keys": ["100:balances"]}
        assert data["queue"] == {"queue_length": 0, "running_count": 0}
        assert data["monitor_running"] is False

    def test_status_with_running_monitor(self, client):
        with patch.object(main, "balance_monitor", MagicMock(is_running=True)):
            response = client.get("/status")

        assert response.json()["monitor_running"] is True


class TestBotTask:
    """The background Telegram task is kept and collected."""

    @pytest.mark.asyncio
    async def test_crash_is_logged(self, caplog):
        async def start():
            raise RuntimeError("invalid bot token")

        task = asyncio.create_task(start())
        await asyncio.wait([task])

        with caplog.at_level("ERROR"):
            main._log_bot_exit(task)

        assert "Telegram bot stopped unexpectedly: invalid bot token" in caplog.text

    @pytest.mark.asyncio
    async def test_cancelled_task_not_logged(self, caplog):
        task = asyncio.create_task(asyncio.sleep(3600))
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.wait([task])

        with caplog.at_level("ERROR"):
            main._log_bot_exit(task)

        assert caplog.text == ""

    def test_shutdown_cancels_running_bot(self, patched_services):
        bot, monitor = patched_services
        cancelled = []

        async def start():
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        bot.start = start

        with TestClient(main.app) as client:
            assert client.get("/health").status_code == 200
            task = main.bot_task
            assert task is not None

        assert cancelled == [True]
        assert task.cancelled()
        bot.stop.assert_awaited_once()
        monitor.start.assert_awaited_once()
        monitor.stop.assert_awaited_once()

    def test_startup_failure_is_logged(self, patched_services, caplog):
        bot, _ = patched_services
        bot.start = AsyncMock(side_effect=RuntimeError("invalid bot token"))

        with caplog.at_level("ERROR"):
            with TestClient(main.app) as client:
                client.get("/health")

        assert "Telegram bot stopped unexpectedly: invalid bot token" in caplog.text
