from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

CENT = Decimal("0.01")


# Normalize any numeric input to a two-place Decimal
def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_equal(a, b) -> bool:
    return to_money(a) == to_money(b)


# Sum of quantity x snapshot price over order/cart lines
def lines_total(lines: Iterable) -> Decimal:
    total = sum((line.quantity * to_money(line.price_at_purchase) for line in lines), Decimal("0"))
    return to_money(total)
