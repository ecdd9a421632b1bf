"""Formatting and conversion utilities."""

from decimal import Decimal

from ewx_rewards.constants import DISPLAY_FRACTION_DIGITS, DISPLAY_FRACTION_DIVISOR, UNITS_PER_EWT


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling the shapes chain clients and indexers return."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip().replace(",", "")
        if v.lower().startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def normalize_hex_str(value) -> str:
    """Normalize hex string to 0x-prefixed lowercase format."""
    if isinstance(value, (bytes, bytearray)):
        return f"0x{value.hex()}"
    s = str(value).strip()
    if s.lower().startswith("0x"):
        return f"0x{s[2:].lower()}"
    return f"0x{s.lower()}"


def split_ewt(amount: int) -> tuple[str, int, str]:
    """Split a minor-unit amount into (sign, whole EWT, 6-digit fraction)."""
    sign = "-" if amount < 0 else ""
    whole, remainder = divmod(abs(amount), UNITS_PER_EWT)
    fraction = str(remainder // DISPLAY_FRACTION_DIVISOR).rjust(DISPLAY_FRACTION_DIGITS, "0")
    return sign, whole, fraction


def format_ewt(amount: int, *, with_fraction: bool = True) -> str:
    """Format a minor-unit amount as EWT (truncated, never rounded up)."""
    sign, whole, fraction = split_ewt(amount)
    if not with_fraction:
        return f"{sign}{whole} EWT"
    return f"{sign}{whole}.{fraction} EWT"


def format_percent(value: Decimal | None, *, decimals: int = 2) -> str:
    """Format a percentage; None renders as N/A."""
    if value is None:
        return "N/A"
    return f"{value:.{decimals}f}%"


def format_block_range(start: int, end: int) -> str:
    """Inclusive block range with its size, e.g. "800–899 (100 blocks)"."""
    return f"{start:,}–{end:,} ({end - start + 1:,} blocks)"


def verdict(meets_sla: bool | None) -> tuple[str, str]:
    """Returns (emoji, label) for an SLA verdict."""
    if meets_sla is None:
        return "➖", "N/A"
    if meets_sla:
        return "✅", "YES"
    return "❌", "NO"
