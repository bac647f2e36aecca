from __future__ import annotations

from calendar import monthrange
from decimal import Decimal, ROUND_HALF_UP


MONEY = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value, *, rounding=ROUND_HALF_UP) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(MONEY, rounding=rounding)


def positive_money(value) -> Decimal | None:
    """Положительная сумма или None (0, отрицательные и мусор не считаются ценой)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = money(value)
    except (ArithmeticError, ValueError, TypeError):
        return None
    if amount <= ZERO:
        return None
    return amount


def add_months(dt, months: int):
    # Календарные месяцы: 31 янв + 1 мес = 28/29 фев, а не "+30 дней"
    idx = (dt.month - 1) + months
    year = dt.year + (idx // 12)
    month = (idx % 12) + 1
    day = min(dt.day, monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
