from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shopcrm.application.order_service import OrderService
from shopcrm.application.schemas import OrderCreate
from shopcrm.core_settings import get_settings
from shopcrm.domain.errors import (
    ConflictError, EmptyCartError, InsufficientStockError, InvalidStatusTransition, PermissionDenied,
    ProductUnavailableError, ValidationFailed,
)
from shopcrm.domain.models import CartItem, Order, OrderItem, Product
from shopcrm.domain.order_status import OrderStatus

DELIVERY = OrderCreate(shipping_address="1-2-3 Chiyoda, Tokyo", recipient_name="Hanako Yamada")


def state(db):
    """Everything order placement is allowed to touch."""
    db.expire_all()
    return {
        "orders": db.scalar(select(func.count(Order.id))),
        "order_items": db.scalar(select(func.count(OrderItem.id))),
        "stock": {p.id: p.stock for p in db.scalars(select(Product)).all()},
        "cart": sorted((c.customer_id, c.product_id, c.quantity) for c in db.scalars(select(CartItem)).all()),
    }


def test_create_order_snapshots_cart(db, customer, make_product, make_rate, fill_cart):
    make_rate("500", threshold="5000")
    product = make_product("Widget", price="1000", stock=5)
    fill_cart(customer, product, 2)

    order = OrderService(db).create(customer.id, DELIVERY)

    assert order.status == OrderStatus.PENDING.value
    assert order.order_number.startswith("ORDER-")
    assert order.subtotal_amount == Decimal("2000")
    assert order.shipping_fee == Decimal("500")
    assert order.total_amount == Decimal("2500")
    assert [(i.product_name, i.price, i.quantity, i.subtotal) for i in order.items] == [
        ("Widget", Decimal("1000"), 2, Decimal("2000"))
    ]
    after = state(db)
    assert after["stock"][product.id] == 3
    assert after["cart"] == []


def test_order_number_format(db):
    number = OrderService(db)._generate_order_number()
    prefix, millis, suffix = number.split("-")
    assert prefix == "ORDER"
    assert millis.isdigit()
    assert len(suffix) == 9 and suffix.isalnum() and suffix == suffix.upper()


def test_item_snapshot_survives_product_changes(db, customer, make_product, fill_cart):
    product = make_product("Widget", price="1000", stock=5)
    fill_cart(customer, product, 1)
    order = OrderService(db).create(customer.id, DELIVERY)

    product = db.get(Product, product.id)
    product.name = "Widget v2"
    product.price = Decimal("9999")
    db.commit()

    reread = OrderService(db).get(order.id)
    assert reread.items[0].product_name == "Widget"
    assert reread.items[0].price == Decimal("1000")


@pytest.mark.parametrize("address,recipient", [("   ", "Hanako"), ("Tokyo", "  ")])
def test_blank_delivery_fields_are_rejected(db, customer, make_product, fill_cart, address, recipient):
    fill_cart(customer, make_product(stock=5), 1)
    before = state(db)
    with pytest.raises(ValidationFailed):
        OrderService(db).create(customer.id, OrderCreate(shipping_address=address, recipient_name=recipient))
    assert state(db) == before


def test_empty_cart_is_rejected(db, customer):
    before = state(db)
    with pytest.raises(EmptyCartError):
        OrderService(db).create(customer.id, DELIVERY)
    assert state(db) == before


def test_inactive_product_is_rejected(db, customer, make_product, fill_cart):
    fill_cart(customer, make_product("Retired", is_active=False, stock=5), 1)
    before = state(db)
    with pytest.raises(ProductUnavailableError) as exc:
        OrderService(db).create(customer.id, DELIVERY)
    assert '"Retired"' in str(exc.value)
    assert state(db) == before


def test_quantity_over_stock_is_rejected(db, customer, make_product, fill_cart):
    ok = make_product("Plenty", stock=10)
    scarce = make_product("Scarce", stock=1)
    fill_cart(customer, ok, 1)
    fill_cart(customer, scarce, 2)
    before = state(db)
    with pytest.raises(InsufficientStockError) as exc:
        OrderService(db).create(customer.id, DELIVERY)
    assert exc.value.product_name == "Scarce"
    assert state(db) == before


def test_archived_customer_cannot_order(db, make_customer, make_product, fill_cart):
    archived = make_customer("Gone", is_archived=True)
    fill_cart(archived, make_product(stock=5), 1)
    with pytest.raises(PermissionDenied):
        OrderService(db).create(archived.id, DELIVERY)


def test_last_unit_goes_to_exactly_one_buyer(db, session_factory, make_customer, make_product, fill_cart):
    product = make_product("Last One", stock=1)
    first = make_customer("First Buyer")
    second = make_customer("Second Buyer")
    fill_cart(first, product, 1)
    fill_cart(second, product, 1)

    # the first buyer has passed validation when the second buyer completes
    service = OrderService(db)
    cart_items = service._load_cart(first.id)
    service._validate_lines(cart_items)
    quote = service._quote(cart_items)

    with session_factory() as other:
        OrderService(other).create(second.id, DELIVERY)

    with pytest.raises(InsufficientStockError):
        service._place_order(first.id, DELIVERY, cart_items, quote)
    db.rollback()

    after = state(db)
    assert after["orders"] == 1
    assert after["stock"][product.id] == 0
    assert after["cart"] == [(first.id, product.id, 1)]


def test_admin_cancel_restocks(db, customer, make_product, fill_cart):
    product = make_product(stock=5)
    fill_cart(customer, product, 2)
    service = OrderService(db)
    order = service.create(customer.id, DELIVERY)

    previous, order = service.update_status(order.id, OrderStatus.CANCELLED, "Out of season")

    assert previous == "PENDING"
    assert order.status == "CANCELLED"
    assert order.cancelled_by == "ADMIN"
    assert order.cancel_reason == "Out of season"
    assert order.cancelled_at is not None
    assert state(db)["stock"][product.id] == 5


def test_cancel_without_restock_when_disabled(db, customer, make_product, fill_cart, monkeypatch):
    monkeypatch.setattr(get_settings(), "RESTOCK_ON_CANCEL", False)
    product = make_product(stock=5)
    fill_cart(customer, product, 2)
    service = OrderService(db)
    order = service.create(customer.id, DELIVERY)

    _, order = service.cancel_by_customer(order.id, customer.id)

    assert order.cancelled_by == "CUSTOMER"
    assert order.cancel_reason == "Cancelled by customer"
    assert state(db)["stock"][product.id] == 3


def test_shipped_order_cannot_be_cancelled_by_customer(db, customer, make_product, fill_cart):
    fill_cart(customer, make_product(stock=5), 1)
    service = OrderService(db)
    order = service.create(customer.id, DELIVERY)
    service.update_status(order.id, OrderStatus.SHIPPED)

    with pytest.raises(InvalidStatusTransition):
        service.cancel_by_customer(order.id, customer.id)
    assert service.get(order.id).status == "SHIPPED"


def test_customer_cannot_cancel_someone_elses_order(db, customer, make_customer, make_product, fill_cart):
    fill_cart(customer, make_product(stock=5), 1)
    order = OrderService(db).create(customer.id, DELIVERY)
    stranger = make_customer("Stranger")

    with pytest.raises(PermissionDenied):
        OrderService(db).cancel_by_customer(order.id, stranger.id)


def test_admin_cancel_after_customer_cancel_restocks_once(db, session_factory, customer, make_product, fill_cart):
    product = make_product(stock=5)
    fill_cart(customer, product, 2)
    order = OrderService(db).create(customer.id, DELIVERY)

    with session_factory() as admin_db:
        admin = OrderService(admin_db)
        # the admin's session still holds the PENDING order
        assert admin.get(order.id).status == "PENDING"

        OrderService(db).cancel_by_customer(order.id, customer.id)

        with pytest.raises(InvalidStatusTransition):
            admin.update_status(order.id, OrderStatus.CANCELLED)

    assert state(db)["stock"][product.id] == 5
    assert OrderService(db).get(order.id).cancelled_by == "CUSTOMER"


def test_status_change_based_on_an_outdated_read_is_refused(db, session_factory, customer, make_product, fill_cart,
                                                            monkeypatch):
    product = make_product(stock=5)
    fill_cart(customer, product, 2)
    order = OrderService(db).create(customer.id, DELIVERY)

    with session_factory() as admin_db:
        admin = OrderService(admin_db)
        outdated = admin.get(order.id)
        # the admin read completed before the customer's cancel was committed
        monkeypatch.setattr(admin, "_locked", lambda order_id: outdated)

        OrderService(db).cancel_by_customer(order.id, customer.id)

        with pytest.raises(ConflictError):
            admin.update_status(order.id, OrderStatus.CANCELLED)

    assert state(db)["stock"][product.id] == 5
    assert OrderService(db).get(order.id).status == "CANCELLED"
