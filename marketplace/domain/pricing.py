# marketplace/domain/pricing.py
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    # str() keeps floats coming back from the driver at their printed value
    return Decimal(str(value))


def effective_price(price, discount_price=None, is_on_sale=False, adjustment=None) -> Decimal:
    """
    Selling price of a catalog product right now.

    The discount price applies only while the product is on sale and a
    discount price is set; the master product's price adjustment is applied
    on top and the result is rounded to cents.
    """
    base = discount_price if is_on_sale and discount_price is not None else price
    factor = 1 + to_decimal(adjustment)
    return (to_decimal(base) * factor).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartLine:
    """A cart row joined with the catalog fields needed to price it."""

    product_id: int
    quantity: int
    price: Decimal
    discount_price: Decimal | None = None
    is_on_sale: bool = False
    price_adjustment: Decimal | None = None
    supplier_is_active: bool = True

    @property
    def unit_price(self) -> Decimal:
        return effective_price(self.price, self.discount_price, self.is_on_sale, self.price_adjustment)


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    price_at_time_of_order: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price_at_time_of_order * self.quantity


@dataclass(frozen=True)
class OrderSnapshot:
    lines: tuple[PricedLine, ...]
    total_amount: Decimal


def snapshot_cart(lines) -> OrderSnapshot:
    """Freeze unit prices for every line and total them."""
    priced = tuple(
        PricedLine(
            product_id=line.product_id,
            quantity=line.quantity,
            price_at_time_of_order=line.unit_price,
        )
        for line in lines
    )
    total = sum((p.line_total for p in priced), ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    return OrderSnapshot(lines=priced, total_amount=total)
