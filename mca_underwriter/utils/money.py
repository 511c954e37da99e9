"""Decimal helpers for currency and percentage math"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

CENT = Decimal("0.01")
TENTH = Decimal("0.1")


def to_decimal(value) -> Decimal:
    """Coerce int/float/str/Decimal to Decimal without binary float artifacts"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half-up (applied only at output boundaries)"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_percent(value: Decimal) -> Decimal:
    """Round a percentage to one decimal place, half-up"""
    return to_decimal(value).quantize(TENTH, rounding=ROUND_HALF_UP)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, half-up"""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def floor_money(value: Decimal) -> Decimal:
    """Truncate to cents; used where rounding up would breach a cap"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)
