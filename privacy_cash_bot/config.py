import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    # Telegram
    TELEGRAM_API_ID = int(os.getenv("TELEGRAM_API_ID", "0"))
    TELEGRAM_API_HASH = os.getenv("TELEGRAM_API_HASH")
    TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")

    # Solana RPC
    SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")

    # Privacy Cash
    PRIVACY_CASH_API_KEY = os.getenv("PRIVACY_CASH_API_KEY")
    PRIVACY_CASH_URL = os.getenv("PRIVACY_CASH_URL", "https://cash.solana-agent.com")

    # MongoDB (wallet registry)
    MONGO_URL = os.getenv("MONGO_URL")
    MONGO_DB = os.getenv("MONGO_DB", "privacy_cash_bot")

    # Balance monitor
    BALANCE_CHECK_INTERVAL = int(os.getenv("BALANCE_CHECK_INTERVAL", "5"))  # minutes
    MONITOR_USER_DELAY = float(os.getenv("MONITOR_USER_DELAY", "1.0"))  # seconds between users

    # Balance cache / request queue
    BALANCE_CACHE_TTL = float(os.getenv("BALANCE_CACHE_TTL", "30"))  # seconds
    FAST_BALANCE_TTL = float(os.getenv("FAST_BALANCE_TTL", "15"))  # seconds, SOL-only reads
    CACHE_SWEEP_INTERVAL = float(os.getenv("CACHE_SWEEP_INTERVAL", "60"))
    QUEUE_MAX_CONCURRENT = int(os.getenv("QUEUE_MAX_CONCURRENT", "3"))

    # Token gate
    PCB_TOKEN_SYMBOL = os.getenv("PCB_TOKEN_SYMBOL", "STORE")
    PCB_MIN_AMOUNT = float(os.getenv("PCB_MIN_AMOUNT", "1000000"))

    DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"


config = Config()
