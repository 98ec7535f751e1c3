"""Formatting and conversion utilities."""

from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from livepeer_delegator.constants import ETH_DISPLAY_DECIMALS, LPT_DISPLAY_DECIMALS, PERCENTAGE_SCALE

NO_DATA = "—"
SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip()
        if not v:
            return default
        if v.startswith("0x"):
            return int(v, 16)
        return int(Decimal(v))
    return int(value)


def as_decimal(value, *, default: Decimal = Decimal(0)) -> Decimal:
    """Parse a subgraph BigDecimal/BigInt (usually a string) without going through float."""
    if value is None:
        return default
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, float):
        d = Decimal(str(value))
    else:
        s = str(value).strip()
        if not s:
            return default
        try:
            d = Decimal(s)
        except InvalidOperation as ex:
            raise ValueError(f"Not a decimal number: {value!r}") from ex
    if not d.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return d


def entity_id(ref) -> str | None:
    """Extract the `id` of a nested entity reference like `{"id": "123"}`."""
    if isinstance(ref, dict):
        rid = ref.get("id")
        return str(rid) if rid is not None else None
    return None


def checksum_address(address: str) -> str:
    """EIP-55 checksummed form, for display and explorer links."""
    from web3 import Web3  # pylint: disable=import-outside-toplevel

    return Web3.to_checksum_address(address)


def fmt_addr(address: str | None) -> str:
    """Shorten an address to 0x1234…abcd."""
    if not address:
        return NO_DATA
    return f"{address[:6]}…{address[-4:]}"


def display_name(address: str | None, names: dict[str, str] | None = None) -> str:
    """ENS name when known, shortened address otherwise."""
    if address and names:
        name = names.get(address.lower())
        if name:
            return name
    return fmt_addr(address)


def format_number(value: Decimal | int, decimals: int = 2) -> str:
    """Thousands separators with a fixed number of decimals."""
    return f"{Decimal(value):,.{decimals}f}"


def format_lpt(value: Decimal, *, decimals: int = LPT_DISPLAY_DECIMALS) -> str:
    return f"{format_number(value, decimals)} LPT"


def format_eth(value: Decimal, *, decimals: int = ETH_DISPLAY_DECIMALS) -> str:
    return f"{format_number(value, decimals)} ETH"


def format_pct(value: Decimal | None, *, decimals: int = 2) -> str:
    """Format an already-scaled percentage (e.g. 328.5 -> '328.50%')."""
    if value is None:
        return NO_DATA
    return f"{value:.{decimals}f}%"


def format_scaled_fraction(value: Decimal, *, decimals: int = 2) -> str:
    """Format a fixed-point fraction (scale 1_000_000) as a percentage."""
    return format_pct(value / PERCENTAGE_SCALE * 100, decimals=decimals)


def format_optional(value: Decimal | None, *, decimals: int = 2) -> str:
    if value is None:
        return NO_DATA
    return format_number(value, decimals)


def format_date(ts: int) -> str:
    """'Mar 4, 2024'"""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def format_month(ts: int) -> str:
    """'Mar 24'"""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%b %y")


def sparkline(values: Sequence[Decimal | int | float]) -> str:
    """Render a series as unicode block characters (one per value)."""
    if not values:
        return ""
    nums = [float(v) for v in values]
    lo, hi = min(nums), max(nums)
    if hi == lo:
        return SPARK_BLOCKS[0] * len(nums) if hi == 0 else SPARK_BLOCKS[len(SPARK_BLOCKS) // 2] * len(nums)
    span = hi - lo
    top = len(SPARK_BLOCKS) - 1
    return "".join(SPARK_BLOCKS[round((v - lo) / span * top)] for v in nums)


def event_marker(kind: str) -> str:
    """Emoji marker for a timeline entry kind."""
    return {
        "bond": "🟢",
        "redelegate": "🟣",
        "unbond": "🔴",
        "rebond": "🟠",
        "withdraw": "🔻",
        "withdrawFees": "💸",
        "claim": "🔵",
    }.get(kind, "•")
