"""Point and currency conversions (1 point = $0.01)."""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

VALUE_PER_POINT = Decimal("0.01")
CURRENCY_SYMBOL = "$"
CURRENCY_CODE = "USD"


def points_to_currency(points: int) -> Decimal:
    return (Decimal(points) * VALUE_PER_POINT).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def currency_to_points(amount: Decimal | float | int) -> int:
    return int((Decimal(str(amount)) / VALUE_PER_POINT).to_integral_value(rounding=ROUND_FLOOR))


def format_currency(amount: Decimal | float | int) -> str:
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{CURRENCY_SYMBOL}{value}"


def format_points_as_currency(points: int) -> str:
    return format_currency(points_to_currency(points))


def points_display_text(points: int, *, show_currency: bool = True) -> str:
    label = f"{points} point{'' if points == 1 else 's'}"
    if not show_currency:
        return label
    return f"{label} ({format_points_as_currency(points)})"
