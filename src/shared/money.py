"""Kroner/øre conversion.

Prices, carts and checkout forms use whole Norwegian kroner. The payment
provider and the persisted order amounts use øre (minor units). Conversion
happens only where data crosses one of those two boundaries.
"""

from decimal import ROUND_HALF_UP, Decimal

CURRENCY = "NOK"
ORE_PER_KRONE = 100
THOUSANDS_SEPARATOR = " "


def to_ore(kroner: int | float) -> int:
    """Convert a kroner amount to whole øre, rounding half up."""
    return int((Decimal(str(kroner)) * ORE_PER_KRONE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_kroner(ore: int | None) -> float:
    """Convert øre to kroner; ``None`` counts as zero."""
    return (ore or 0) / ORE_PER_KRONE


def format_kroner(kroner: int | float) -> str:
    """Render an amount the way the shop prints prices: ``1 234,-``."""
    whole = int(Decimal(str(kroner)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    grouped = f"{abs(whole):,}".replace(",", THOUSANDS_SEPARATOR)
    sign = "-" if whole < 0 else ""
    return f"{sign}{grouped},-"
