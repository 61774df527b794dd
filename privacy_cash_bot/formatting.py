"""
Base-unit conversion and notification text helpers.
"""
from decimal import Decimal, ROUND_DOWN
from typing import Union

from .models import SUPPORTED_TOKENS

Number = Union[int, float, Decimal]


def base_units_to_tokens(amount: int, decimals: int) -> Decimal:
    """
    Convert base units (lamports / smallest token unit) to a token amount.

    Args:
        amount: Amount in base units
        decimals: Token decimals

    Returns:
        Exact token amount as a Decimal
    """
    if decimals == 0:
        return Decimal(amount)
    return Decimal(amount) / (Decimal(10) ** decimals)


def tokens_to_base_units(amount: Number, decimals: int) -> int:
    """Convert a human token amount to base units, flooring any remainder."""
    value = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def format_decimal(value: Decimal, decimals: int = 9) -> str:
    quant = Decimal(10) ** -decimals
    rounded = value.quantize(quant, rounding=ROUND_DOWN)
    formatted = format(rounded, 'f')
    return formatted.rstrip('0').rstrip('.') if '.' in formatted else formatted


def format_token_amount(amount: int, symbol: str) -> str:
    """Format base units of a supported token for display, e.g. '1.5 SOL'."""
    token = SUPPORTED_TOKENS[symbol]
    return f"{format_decimal(base_units_to_tokens(amount, token.decimals), token.decimals)} {symbol}"


def format_percent_change(previous: Decimal, change: Decimal) -> str:
    """Percentage change with two decimals, or '∞' when the previous amount is zero."""
    if previous == 0:
        return "∞"
    return f"{(change / previous * 100):.2f}"


def format_balance_change(label: str, previous: int, current: int, decimals: int) -> str:
    """
    Build one Markdown change line for a balance alert.

    Args:
        label: Display label, e.g. "SOL (Private)"
        previous: Previous amount in base units
        current: Current amount in base units
        decimals: Token decimals used for scaling
    """
    prev_amount = base_units_to_tokens(previous, decimals)
    curr_amount = base_units_to_tokens(current, decimals)
    change = curr_amount - prev_amount
    percent = format_percent_change(prev_amount, change)

    if change > 0:
        emoji, sign = "📈", "+"
    elif change < 0:
        emoji, sign = "📉", ""
    else:
        emoji, sign = "➡️", ""

    return (
        f"{emoji} **{label} Balance Changed**\n\n"
        f"Previous: `{prev_amount:.6f}` {label}\n"
        f"Current: `{curr_amount:.6f}` {label}\n"
        f"Change: `{sign}{change:.6f}` {label} ({sign}{percent}%)"
    )


def shorten_address(address: str, chars: int = 4) -> str:
    return f"{address[:chars]}...{address[-chars:]}"
