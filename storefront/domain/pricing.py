# storefront/domain/pricing.py
"""
Pure money arithmetic for carts and orders.

No I/O and no validation here, callers pass already checked values.
Every amount is a Decimal rounded to cents.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from storefront.domain.enums import DiscountType

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _field(item: Any, name: str):
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)


def subtotal(items: Iterable[Any]) -> Decimal:
    """Sum of price * quantity over line items (objects or dicts)."""
    return to_money(
        sum(
            (to_money(_field(i, "price")) * int(_field(i, "quantity")) for i in items),
            ZERO,
        )
    )


def discount(discount_type, value, base) -> Decimal:
    """Discount granted by a coupon rule on `base`, never outside [0, base]."""
    base = to_money(base)
    value = Decimal(str(value))

    if base <= ZERO or value <= 0:
        return ZERO

    kind = DiscountType(discount_type)
    if kind is DiscountType.PERCENTAGE:
        amount = base * value / Decimal(100)
    elif kind is DiscountType.FIXED:
        amount = value
    else:
        raise AssertionError(f"unhandled discount type {kind}")

    return to_money(min(amount, base))


def total(subtotal_amount, discount_amount, shipping) -> Decimal:
    result = to_money(subtotal_amount) - to_money(discount_amount)
    shipping = to_money(shipping)
    if shipping > ZERO:
        result += shipping
    return to_money(result)


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "shipping": self.shipping,
            "total": self.total,
        }


def price_cart(items: Iterable[Any], coupon: Any = None, shipping=ZERO) -> Totals:
    """Derive all cart totals. `coupon` needs `discount_type` and `discount_value`."""
    sub = subtotal(items)
    disc = ZERO
    if coupon is not None:
        disc = discount(coupon.discount_type, coupon.discount_value, sub)
    ship = to_money(shipping)
    return Totals(subtotal=sub, discount=disc, shipping=ship, total=total(sub, disc, ship))
