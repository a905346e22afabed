from sqlalchemy.orm import Session, selectinload
from shopcrm.domain.models import Order, utcnow
from shopcrm.domain.order_status import OrderStatus
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

REPORT_TYPES = ("daily", "monthly", "product", "customer")
DEFAULT_WINDOW_DAYS = 30

class SalesReportService:
    def __init__(self, db: Session):
        self.db = db

    def _orders(self, start: date, end: date) -> list[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items), selectinload(Order.customer))
            .filter(
                Order.status != OrderStatus.CANCELLED.value,
                Order.ordered_at >= datetime.combine(start, time.min),
                Order.ordered_at < datetime.combine(end + timedelta(days=1), time.min),
            )
            .all()
        )

    def build(
        self,
        report_type: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 10,
    ) -> dict:
        end = end_date or utcnow().date()
        start = start_date or end - timedelta(days=DEFAULT_WINDOW_DAYS)
        orders = self._orders(start, end)

        rows: dict[str, dict] = {}

        def row(key: str, label: Optional[str] = None) -> dict:
            if key not in rows:
                rows[key] = {
                    "key": key,
                    "label": label or key,
                    "total_sales": Decimal("0"),
                    "total_shipping": Decimal("0"),
                    "total_quantity": 0,
                    "order_ids": set(),
                }
            return rows[key]

        for order in orders:
            if report_type in ("daily", "monthly"):
                fmt = "%Y-%m-%d" if report_type == "daily" else "%Y-%m"
                entry = row(order.ordered_at.strftime(fmt))
                entry["total_sales"] += Decimal(order.total_amount)
                entry["total_shipping"] += Decimal(order.shipping_fee)
                entry["total_quantity"] += sum(item.quantity for item in order.items)
                entry["order_ids"].add(order.id)
            elif report_type == "customer":
                entry = row(str(order.customer_id), order.customer.name if order.customer else None)
                entry["total_sales"] += Decimal(order.total_amount)
                entry["total_shipping"] += Decimal(order.shipping_fee)
                entry["total_quantity"] += sum(item.quantity for item in order.items)
                entry["order_ids"].add(order.id)
            else:
                for item in order.items:
                    entry = row(str(item.product_id), item.product_name)
                    entry["total_sales"] += Decimal(item.subtotal)
                    entry["total_quantity"] += item.quantity
                    entry["order_ids"].add(order.id)

        data = []
        for entry in rows.values():
            order_ids = entry.pop("order_ids")
            data.append({**entry, "order_count": len(order_ids)})

        if report_type in ("daily", "monthly"):
            data.sort(key=lambda r: r["key"])
        else:
            data.sort(key=lambda r: r["total_sales"], reverse=True)
            data = data[:limit]

        return {"type": report_type, "start_date": start, "end_date": end, "data": data}
