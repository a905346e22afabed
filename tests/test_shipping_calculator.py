from decimal import Decimal
from typing import Optional

import pytest

from shopcrm.application.shipping import (
    CartLine, RateView, SqlShippingRateLookup, calculate_shipping, quote_as_dict,
)


class FixedRates:
    def __init__(self, default: Optional[RateView] = None, by_category: Optional[dict] = None):
        self.default = default
        self.by_category = by_category or {}

    def rate_for_category(self, category_id):
        return self.by_category.get(category_id)

    def default_rate(self):
        return self.default


def line(price, quantity, category_id=None, category_type=None, product_id=1):
    return CartLine(
        product_id=product_id,
        product_name=f"Product {product_id}",
        price=Decimal(price),
        quantity=quantity,
        category_id=category_id,
        category_type=category_type,
    )


DEFAULT = RateView(shipping_fee=Decimal("500"), free_shipping_threshold=Decimal("5000"))


def test_default_rate_below_threshold():
    quote = calculate_shipping([line("1000", 2)], FixedRates(default=DEFAULT))
    assert quote.subtotal_amount == Decimal("2000")
    assert quote.shipping_fee == Decimal("500")
    assert quote.total_amount == Decimal("2500")
    assert not quote.free_shipping_applied


@pytest.mark.parametrize("quantity,expected_fee", [(2, Decimal("500")), (3, Decimal("0")), (4, Decimal("0"))])
def test_threshold_is_inclusive(quantity, expected_fee):
    rates = FixedRates(default=RateView(Decimal("500"), Decimal("3000")))
    quote = calculate_shipping([line("1000", quantity)], rates)
    assert quote.shipping_fee == expected_fee
    assert quote.total_amount == quote.subtotal_amount + expected_fee


def test_rate_without_threshold_always_charges():
    quote = calculate_shipping([line("100000", 1)], FixedRates(default=RateView(Decimal("800"))))
    assert quote.shipping_fee == Decimal("800")


def test_no_rates_means_free():
    quote = calculate_shipping([line("1000", 1)], FixedRates())
    assert quote.shipping_fee == Decimal("0")
    assert quote.total_amount == Decimal("1000")


def test_empty_cart_is_all_zero():
    quote = calculate_shipping([], FixedRates(default=DEFAULT))
    assert quote.subtotal_amount == quote.shipping_fee == quote.total_amount == Decimal("0")
    assert quote.groups == []


def test_category_rate_wins_over_default():
    rates = FixedRates(default=DEFAULT, by_category={7: RateView(Decimal("1200"))})
    quote = calculate_shipping([line("1000", 1, category_id=7)], rates)
    assert quote.shipping_fee == Decimal("1200")


def test_category_without_rate_falls_back_to_default():
    quote = calculate_shipping([line("1000", 1, category_id=7)], FixedRates(default=DEFAULT))
    assert quote.shipping_fee == Decimal("500")


def test_digital_lines_carry_no_shipping():
    quote = calculate_shipping(
        [line("3000", 1, category_id=9, category_type="DIGITAL")],
        FixedRates(default=DEFAULT),
    )
    assert quote.shipping_fee == Decimal("0")
    assert quote.subtotal_amount == Decimal("3000")


def test_categories_are_charged_per_group():
    rates = FixedRates(
        default=DEFAULT,
        by_category={
            1: RateView(Decimal("300"), Decimal("2000")),
            2: RateView(Decimal("700")),
        },
    )
    lines = [
        line("1000", 2, category_id=1, product_id=1),  # reaches its own threshold
        line("500", 1, category_id=2, product_id=2),
        line("400", 1, category_id=None, product_id=3),
        line("900", 1, category_id=3, category_type="DIGITAL", product_id=4),
    ]
    quote = calculate_shipping(lines, rates)

    assert quote.subtotal_amount == Decimal("3800")
    assert quote.shipping_fee == Decimal("0") + Decimal("700") + Decimal("500")
    assert quote.total_amount == Decimal("5000")
    assert quote.free_shipping_applied
    assert {g.category_id for g in quote.groups} == {1, 2, None}


def test_threshold_uses_group_subtotal_not_cart_subtotal():
    rates = FixedRates(by_category={1: RateView(Decimal("300"), Decimal("2000"))}, default=RateView(Decimal("0")))
    lines = [line("1500", 1, category_id=1, product_id=1), line("5000", 1, category_id=2, product_id=2)]
    quote = calculate_shipping(lines, rates)
    assert quote.shipping_fee == Decimal("300")


def test_same_input_gives_same_quote():
    lines = [line("1000", 2, category_id=1), line("250", 4, category_id=2, product_id=2)]
    rates = FixedRates(default=DEFAULT)
    assert calculate_shipping(lines, rates) == calculate_shipping(lines, rates)


def test_quote_as_dict_includes_free_flag():
    data = quote_as_dict(calculate_shipping([line("6000", 1)], FixedRates(default=DEFAULT)))
    assert data["free_shipping_applied"] is True
    assert data["groups"][0]["free_shipping"] is True


def test_sql_lookup_ignores_inactive_rates(db, make_category, make_rate):
    goods = make_category("Goods")
    make_rate("900", category=goods, is_active=False)
    make_rate("500", threshold="5000")
    make_rate("100", is_active=False)

    lookup = SqlShippingRateLookup(db)
    assert lookup.rate_for_category(goods.id) is None
    assert lookup.default_rate() == RateView(Decimal("500"), Decimal("5000"))

    quote = calculate_shipping([line("1000", 1, category_id=goods.id)], lookup)
    assert quote.shipping_fee == Decimal("500")
