from datetime import timedelta
from decimal import Decimal

from shopcrm.domain.models import Order, OrderItem, utcnow


def add_order(db, customer, product, quantity, status="PENDING", days_ago=0, shipping="500"):
    subtotal = Decimal(product.price) * quantity
    order = Order(
        order_number=f"ORDER-TEST-{db.query(Order).count() + 1}",
        customer_id=customer.id,
        subtotal_amount=subtotal,
        shipping_fee=Decimal(shipping),
        total_amount=subtotal + Decimal(shipping),
        status=status,
        shipping_address="Tokyo",
        recipient_name=customer.name,
        ordered_at=utcnow() - timedelta(days=days_ago),
    )
    order.items.append(OrderItem(
        product_id=product.id,
        product_name=product.name,
        price=product.price,
        quantity=quantity,
        subtotal=subtotal,
    ))
    db.add(order)
    db.commit()
    return order


def test_daily_report_excludes_cancelled(client, db, customer, make_product, owner_headers):
    product = make_product(price="1000")
    add_order(db, customer, product, 2)
    add_order(db, customer, product, 1)
    add_order(db, customer, product, 5, status="CANCELLED")
    add_order(db, customer, product, 1, days_ago=60)

    body = client.get("/sales-report?type=daily", headers=owner_headers).json()

    assert len(body["data"]) == 1
    row = body["data"][0]
    assert row["order_count"] == 2
    assert row["total_sales"] == 4000
    assert row["total_shipping"] == 1000
    assert row["total_quantity"] == 3


def test_product_and_customer_reports(client, db, make_customer, make_product, owner_headers):
    mug = make_product("Mug", price="800")
    lamp = make_product("Lamp", price="5000")
    alice = make_customer("Alice Smith")
    bob = make_customer("Bob Jones")
    add_order(db, alice, mug, 3)
    add_order(db, bob, lamp, 1)

    products = client.get("/sales-report?type=product", headers=owner_headers).json()["data"]
    assert [(r["label"], r["total_sales"], r["total_quantity"]) for r in products] == [("Lamp", 5000, 1), ("Mug", 2400, 3)]

    customers = client.get("/sales-report?type=customer&limit=1", headers=owner_headers).json()["data"]
    assert [r["label"] for r in customers] == ["Bob Jones"]


def test_report_window_and_permissions(client, customer_headers, owner_headers):
    today = utcnow().date()
    body = client.get("/sales-report?type=monthly", headers=owner_headers).json()
    assert body["end_date"] == today.isoformat()
    assert body["start_date"] == (today - timedelta(days=30)).isoformat()

    bad = client.get(f"/sales-report?start_date={today}&end_date={today - timedelta(days=1)}", headers=owner_headers)
    assert bad.status_code == 400
    assert client.get("/sales-report", headers=customer_headers).status_code == 403
