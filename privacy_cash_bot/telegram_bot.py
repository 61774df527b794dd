"""
Telegram bot for the Privacy Cash wallet.
Private chat only. Delivers balance alerts and exposes a handful of wallet
commands on top of the balance and shield services.
"""
import logging
from typing import Optional

from telethon import TelegramClient, events
from telethon.sessions import StringSession

from .balance_monitor import BalanceMonitor
from .balance_service import BalanceService
from .config import config as app_config
from .formatting import format_token_amount, shorten_address
from .models import SOL_SYMBOL, parse_token_symbol
from .shield_service import ShieldService
from .token_gate import TokenGate
from .wallet_service import WalletService

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "**Privacy Cash Wallet**\n\n"
    "/connect <address> <wallet_id> - link your wallet\n"
    "/balance - show public and private balances\n"
    "/refresh - re-read balances now\n"
    "/shield <amount> <token> - move funds into your private balance\n"
    "/unshield <amount> <token> [to <address>] - withdraw private funds\n"
    "/notify on|off - balance change alerts\n"
    "/holder - token holder status\n"
    "/disconnect - unlink your wallet"
)


class TelegramBot:
    def __init__(
        self,
        wallet_service: WalletService,
        balance_service: BalanceService,
        shield_service: ShieldService,
        monitor: Optional[BalanceMonitor] = None,
        token_gate: Optional[TokenGate] = None,
    ):
        self.wallets = wallet_service
        self.balances = balance_service
        self.shield = shield_service
        self.monitor = monitor
        self.token_gate = token_gate
        # Use StringSession (in-memory) to avoid file-based session conflicts during deploys
        self.client = TelegramClient(
            StringSession(),
            app_config.TELEGRAM_API_ID,
            app_config.TELEGRAM_API_HASH
        )
        self.bot_username: Optional[str] = None

        self._register_handlers()

    def set_monitor(self, monitor: BalanceMonitor):
        """Set balance monitor reference after initialization."""
        self.monitor = monitor

    def _register_handlers(self):
        """Register message handlers."""

        @self.client.on(events.NewMessage(incoming=True, func=lambda e: e.is_private))
        async def handle_private_message(event):
            await self._handle_message(event)

    async def send_message(self, user_id: int, text: str):
        """Notification sink used by the balance monitor. Errors propagate to the caller."""
        await self.client.send_message(user_id, text, parse_mode='md')

    async def _handle_message(self, event):
        tg_user_id = event.sender_id
        message_text = (event.message.message or "").strip()
        logger.info(f"Received message from {tg_user_id}: {message_text[:50]}...")

        if not message_text.startswith('/'):
            await event.reply(HELP_TEXT, parse_mode='md')
            return

        parts = message_text.split(maxsplit=1)
        command = parts[0].lower().split('@')[0]  # Handle /cmd@botname
        args = parts[1] if len(parts) > 1 else ""

        try:
            await self._handle_command(event, tg_user_id, command, args)
        except Exception as e:
            logger.error(f"Command {command} failed for {tg_user_id}: {e}", exc_info=True)
            await event.reply(f"❌ Error: {e}")

    async def _handle_command(self, event, tg_user_id: int, command: str, args: str):
        if command in ('/start', '/help'):
            await event.reply(HELP_TEXT, parse_mode='md')
        elif command == '/connect':
            await self._handle_connect(event, tg_user_id, args)
        elif command == '/disconnect':
            await self._handle_disconnect(event, tg_user_id)
        elif command == '/balance':
            await self._handle_balance(event, tg_user_id, force_refresh=False)
        elif command == '/refresh':
            await self._handle_balance(event, tg_user_id, force_refresh=True)
        elif command == '/notify':
            await self._handle_notify(event, tg_user_id, args)
        elif command == '/shield':
            await self._handle_shield(event, tg_user_id, args)
        elif command == '/unshield':
            await self._handle_unshield(event, tg_user_id, args)
        elif command == '/holder':
            await self._handle_holder(event, tg_user_id)
        else:
            await event.reply(HELP_TEXT, parse_mode='md')

    async def _handle_connect(self, event, tg_user_id: int, args: str):
        parts = args.split()
        if len(parts) != 2:
            await event.reply("Usage: /connect <wallet_address> <wallet_id>")
            return

        wallet_address, wallet_id = parts
        sender = await event.get_sender()
        await self.wallets.connect_wallet(
            tg_user_id,
            wallet_address,
            wallet_id,
            tg_username=getattr(sender, 'username', None),
        )
        # A new wallet must not be diffed against the previous one's figures
        self.balances.forget_user(tg_user_id)
        if self.monitor:
            self.monitor.clear_user_balance(tg_user_id)
        await event.reply(f"✅ Connected wallet `{shorten_address(wallet_address)}`", parse_mode='md')

    async def _handle_disconnect(self, event, tg_user_id: int):
        removed = await self.wallets.disconnect_wallet(tg_user_id)
        self.balances.forget_user(tg_user_id)
        if self.monitor:
            self.monitor.clear_user_balance(tg_user_id)
        if removed:
            await event.reply("Wallet disconnected.")
        else:
            await event.reply("No wallet connected.")

    async def _handle_balance(self, event, tg_user_id: int, force_refresh: bool):
        balances = await self.balances.get_balances(tg_user_id, force_refresh=force_refresh)
        if balances is None:
            await event.reply("❌ No wallet connected. Use /connect first.")
            return

        lines = [
            "**Balances**\n",
            f"{SOL_SYMBOL}: {format_token_amount(balances.sol.public, SOL_SYMBOL)} public, "
            f"{format_token_amount(balances.sol.private, SOL_SYMBOL)} private",
        ]
        for symbol, pair in balances.tokens.items():
            if pair.public == 0 and pair.private == 0:
                continue
            lines.append(
                f"{symbol}: {format_token_amount(pair.public, symbol)} public, "
                f"{format_token_amount(pair.private, symbol)} private"
            )
        await event.reply("\n".join(lines), parse_mode='md')

    async def _handle_notify(self, event, tg_user_id: int, args: str):
        choice = args.strip().lower()
        if choice not in ('on', 'off'):
            await event.reply("Usage: /notify on|off")
            return

        enabled = choice == 'on'
        if not await self.wallets.toggle_monitoring(tg_user_id, enabled):
            await event.reply("❌ No wallet connected. Use /connect first.")
            return

        if self.monitor:
            if enabled:
                await self.monitor.refresh_user_balance(tg_user_id)
            else:
                self.monitor.clear_user_balance(tg_user_id)
        await event.reply("🔔 Balance alerts enabled." if enabled else "🔕 Balance alerts disabled.")

    async def _handle_holder(self, event, tg_user_id: int):
        if not self.token_gate:
            await event.reply("Token holder checks are not enabled.")
            return

        result = await self.token_gate.check_eligibility(tg_user_id)
        symbol = self.token_gate.token_symbol
        if result.error == "no_balances":
            await event.reply("❌ No wallet connected. Use /connect first.")
        elif result.error:
            await event.reply(f"❌ Could not check {symbol} balance: {result.error}")
        elif result.eligible:
            await event.reply(f"✅ Holder: {result.balance:,.2f} {symbol}")
        else:
            await event.reply(
                f"Not a holder: {result.balance:,.2f} {symbol} "
                f"(minimum {self.token_gate.min_amount:,.0f})"
            )

    def _parse_amount_and_token(self, args: str):
        parts = args.split()
        if len(parts) < 2:
            return None, None, parts
        try:
            amount = float(parts[0])
        except ValueError:
            return None, None, parts
        if amount <= 0:
            return None, None, parts
        return parts[0], parse_token_symbol(parts[1]), parts[2:]

    async def _handle_shield(self, event, tg_user_id: int, args: str):
        amount, symbol, _ = self._parse_amount_and_token(args)
        if amount is None or symbol is None:
            await event.reply("Usage: /shield <amount> <token>\n\nExample: /shield 0.5 SOL")
            return

        if symbol == SOL_SYMBOL:
            result = await self.shield.deposit_sol(tg_user_id, amount)
        else:
            result = await self.shield.deposit_spl(tg_user_id, symbol, amount)

        if result.success:
            await event.reply(f"✅ Shielded {amount} {symbol}\nTx: `{result.signature}`", parse_mode='md')
        else:
            await event.reply(f"❌ Deposit failed: {result.error}")

    async def _handle_unshield(self, event, tg_user_id: int, args: str):
        amount, symbol, rest = self._parse_amount_and_token(args)
        if amount is None or symbol is None:
            await event.reply(
                "Usage: /unshield <amount> <token> [to <address>]\n\n"
                "Example: /unshield 0.1 SOL to 6qfHea..."
            )
            return

        recipient = None
        if rest and rest[0].lower() == 'to' and len(rest) > 1:
            recipient = rest[1]

        if symbol == SOL_SYMBOL:
            result = await self.shield.withdraw_sol(tg_user_id, amount, recipient)
        else:
            result = await self.shield.withdraw_spl(tg_user_id, symbol, amount, recipient)

        if result.success:
            await event.reply(f"✅ Unshielded {amount} {symbol}\nTx: `{result.signature}`", parse_mode='md')
        else:
            await event.reply(f"❌ Withdrawal failed: {result.error}")

    async def start(self):
        """Start the Telegram bot."""
        await self.client.start(bot_token=app_config.TELEGRAM_BOT_TOKEN)

        me = await self.client.get_me()
        self.bot_username = me.username
        logger.info(f"Telegram bot started as @{self.bot_username}")

        # Keep running
        await self.client.run_until_disconnected()

    async def stop(self):
        """Stop the Telegram bot."""
        await self.client.disconnect()
        logger.info("Telegram bot stopped")
