import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .balance_cache import BalanceCache
from .balance_monitor import BalanceMonitor
from .balance_service import BalanceService
from .config import config as app_config
from .database import DatabaseService
from .privacy_cash import PrivacyCashClient
from .request_queue import RequestQueue
from .shield_service import ShieldService
from .solana_rpc import SolanaRpcClient
from .telegram_bot import TelegramBot
from .token_gate import TokenGate
from .wallet_service import WalletService

# Initialize logging
logging.basicConfig(level=logging.DEBUG if app_config.DEBUG_MODE else logging.INFO)
logger = logging.getLogger(__name__)

# Initialize services (started in lifespan)
db_service = DatabaseService(app_config.MONGO_URL, app_config.MONGO_DB)
privacy_cash = PrivacyCashClient(app_config.PRIVACY_CASH_API_KEY, app_config.PRIVACY_CASH_URL)
rpc_client = SolanaRpcClient(app_config.SOLANA_RPC_URL)

balance_cache = BalanceCache(
    default_ttl=app_config.BALANCE_CACHE_TTL,
    sweep_interval=app_config.CACHE_SWEEP_INTERVAL,
)
request_queue = RequestQueue(max_concurrent=app_config.QUEUE_MAX_CONCURRENT)

wallet_service = WalletService(db_service, privacy_cash)
balance_service = BalanceService(
    wallet_service,
    rpc_client,
    balance_cache,
    request_queue,
    fast_balance_ttl=app_config.FAST_BALANCE_TTL,
)
shield_service = ShieldService(wallet_service, balance_service)
token_gate = TokenGate(
    balance_service,
    balance_cache,
    token_symbol=app_config.PCB_TOKEN_SYMBOL,
    min_amount=app_config.PCB_MIN_AMOUNT,
)

telegram_bot: TelegramBot = None
balance_monitor: BalanceMonitor = None
bot_task: asyncio.Task = None


def _log_bot_exit(task: asyncio.Task):
    """Log a bot task that ended with an exception (e.g. bad token at startup)."""
    if task.cancelled():
        return
    error = task.exception()
    if error:
        logger.error(f"Telegram bot stopped unexpectedly: {error}", exc_info=error)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    global telegram_bot, balance_monitor, bot_task

    # Startup
    logger.info("Starting up...")

    await db_service.setup_indexes()
    await balance_cache.start()

    balance_monitor = BalanceMonitor(
        balance_service,
        wallet_service,
        interval_seconds=app_config.BALANCE_CHECK_INTERVAL * 60,
        user_delay=app_config.MONITOR_USER_DELAY,
    )
    shield_service.set_monitor(balance_monitor)

    # Start Telegram bot in background
    telegram_bot = TelegramBot(
        wallet_service,
        balance_service,
        shield_service,
        monitor=balance_monitor,
        token_gate=token_gate,
    )
    balance_monitor.set_notifier(telegram_bot)
    bot_task = asyncio.create_task(telegram_bot.start())
    bot_task.add_done_callback(_log_bot_exit)
    logger.info("Telegram bot started")

    await balance_monitor.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    if balance_monitor:
        await balance_monitor.stop()
    if telegram_bot:
        await telegram_bot.stop()
    if bot_task and not bot_task.done():
        bot_task.cancel()
        try:
            await bot_task
        except asyncio.CancelledError:
            pass
    await balance_cache.stop()
    await rpc_client.close()
    await privacy_cash.close()


app = FastAPI(lifespan=lifespan)


# Health check endpoint for Dokku
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/status")
async def status():
    """Cache and queue counters for debugging load."""
    return {
        "cache": balance_cache.stats(),
        "queue": request_queue.status(),
        "monitor_running": bool(balance_monitor and balance_monitor.is_running),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
