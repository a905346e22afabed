"""Shipping fee calculation.

Lines are grouped by category and each group pays its own rate once: the
category's active rate when it has one, otherwise the active default rate
(``category_id IS NULL``), otherwise nothing. A group ships free when its rate
has a threshold and the group subtotal reaches it. Digital categories never
carry shipping. The cart's fee is the sum of the group fees.
"""
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopcrm.domain.models import Category, ShippingRate

ZERO = Decimal("0")
DIGITAL = "DIGITAL"


@dataclass(frozen=True)
class CartLine:
    product_id: int
    product_name: str
    price: Decimal
    quantity: int
    category_id: Optional[int] = None
    category_type: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return Decimal(self.price) * self.quantity


@dataclass(frozen=True)
class RateView:
    shipping_fee: Decimal
    free_shipping_threshold: Optional[Decimal] = None


@dataclass(frozen=True)
class GroupShipping:
    category_id: Optional[int]
    subtotal: Decimal
    shipping_fee: Decimal
    free_shipping: bool
    free_shipping_threshold: Optional[Decimal]


@dataclass(frozen=True)
class ShippingQuote:
    subtotal_amount: Decimal
    shipping_fee: Decimal
    total_amount: Decimal
    groups: list[GroupShipping] = field(default_factory=list)

    @property
    def free_shipping_applied(self) -> bool:
        return any(group.free_shipping for group in self.groups)


class ShippingRateLookup(Protocol):
    def rate_for_category(self, category_id: int) -> Optional[RateView]: ...

    def default_rate(self) -> Optional[RateView]: ...


class SqlShippingRateLookup:
    """Reads active rates from the database, memoised for one calculation."""

    def __init__(self, db: Session):
        self.db = db
        self._by_category: dict[int, Optional[RateView]] = {}
        self._default: Optional[RateView] = None
        self._default_loaded = False

    def rate_for_category(self, category_id: int) -> Optional[RateView]:
        if category_id not in self._by_category:
            rate = self.db.scalars(
                select(ShippingRate).where(
                    ShippingRate.category_id == category_id,
                    ShippingRate.is_active.is_(True),
                )
            ).first()
            self._by_category[category_id] = _view(rate)
        return self._by_category[category_id]

    def default_rate(self) -> Optional[RateView]:
        if not self._default_loaded:
            rate = self.db.scalars(
                select(ShippingRate)
                .where(ShippingRate.category_id.is_(None), ShippingRate.is_active.is_(True))
                .order_by(ShippingRate.id)
            ).first()
            self._default = _view(rate)
            self._default_loaded = True
        return self._default


def _view(rate: Optional[ShippingRate]) -> Optional[RateView]:
    if rate is None:
        return None
    threshold = rate.free_shipping_threshold
    return RateView(
        shipping_fee=Decimal(rate.shipping_fee),
        free_shipping_threshold=Decimal(threshold) if threshold is not None else None,
    )


def calculate_shipping(lines: Iterable[CartLine], rates: ShippingRateLookup) -> ShippingQuote:
    lines = list(lines)
    subtotal = sum((line.subtotal for line in lines), ZERO)

    group_subtotals: dict[Optional[int], Decimal] = {}
    for line in lines:
        if line.category_type == DIGITAL:
            continue
        group_subtotals[line.category_id] = group_subtotals.get(line.category_id, ZERO) + line.subtotal

    groups = []
    for category_id, group_subtotal in group_subtotals.items():
        rate = rates.rate_for_category(category_id) if category_id is not None else None
        if rate is None:
            rate = rates.default_rate()
        if rate is None:
            groups.append(GroupShipping(category_id, group_subtotal, ZERO, False, None))
            continue
        threshold = rate.free_shipping_threshold
        free = threshold is not None and group_subtotal >= threshold
        groups.append(GroupShipping(
            category_id=category_id,
            subtotal=group_subtotal,
            shipping_fee=ZERO if free else rate.shipping_fee,
            free_shipping=free,
            free_shipping_threshold=threshold,
        ))

    shipping_fee = sum((group.shipping_fee for group in groups), ZERO)
    return ShippingQuote(
        subtotal_amount=subtotal,
        shipping_fee=shipping_fee,
        total_amount=subtotal + shipping_fee,
        groups=groups,
    )


def line_from_product(product, quantity: int) -> CartLine:
    category: Optional[Category] = product.category
    return CartLine(
        product_id=product.id,
        product_name=product.name,
        price=Decimal(product.price),
        quantity=quantity,
        category_id=product.category_id,
        category_type=category.category_type if category is not None else None,
    )


def quote_as_dict(quote: ShippingQuote) -> dict:
    data = asdict(quote)
    data["free_shipping_applied"] = quote.free_shipping_applied
    return data
