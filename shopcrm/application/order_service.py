from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session, selectinload
from shopcrm.core.logging_config import get_logger
from shopcrm.core_settings import get_settings
from shopcrm.domain.errors import (
    ConflictError, EmptyCartError, InsufficientStockError, NotFoundError, PermissionDenied,
    ProductUnavailableError, ValidationFailed,
)
from shopcrm.domain.models import CartItem, Customer, Order, OrderItem, Product, utcnow
from shopcrm.domain.order_status import (
    CancelledBy, DEFAULT_CANCEL_REASONS, OrderStatus,
    ensure_admin_transition, ensure_customer_cancellable,
)
from .schemas import OrderCreate
from .shipping import ShippingQuote, SqlShippingRateLookup, calculate_shipping, line_from_product
from decimal import Decimal
from typing import List, Optional, Tuple
import secrets
import string
import time

logger = get_logger(__name__)

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits

class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _generate_order_number(self) -> str:
        """ORDER-<epoch millis>-<9 random A-Z0-9>"""
        suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(9))
        return f"ORDER-{int(time.time() * 1000)}-{suffix}"

    def _detail_query(self):
        return select(Order).options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.customer),
        )

    def get(self, order_id: int, customer_id: Optional[int] = None) -> Order:
        query = self._detail_query().where(Order.id == order_id)
        if customer_id is not None:
            query = query.where(Order.customer_id == customer_id)
        order = self.db.scalars(query).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list(
        self,
        page: int,
        limit: int,
        customer_id: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> Tuple[List[Order], int]:
        conditions = []
        if customer_id is not None:
            conditions.append(Order.customer_id == customer_id)
        if status is not None:
            conditions.append(Order.status == OrderStatus(status).value)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                Order.order_number.ilike(pattern),
                Order.customer.has(Customer.name.ilike(pattern)),
                Order.customer.has(Customer.email.ilike(pattern)),
            ))

        total = self.db.scalar(select(func.count(Order.id)).where(*conditions))
        orders = self.db.scalars(
            self._detail_query()
            .where(*conditions)
            .order_by(Order.ordered_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return list(orders), total

    #############################
    # Placement                 #
    #############################

    def _load_cart(self, customer_id: int) -> List[CartItem]:
        return list(self.db.scalars(
            select(CartItem)
            .where(CartItem.customer_id == customer_id)
            .options(selectinload(CartItem.product).selectinload(Product.category))
            .order_by(CartItem.product_id)
        ).all())

    def _validate_lines(self, cart_items: List[CartItem]) -> None:
        if not cart_items:
            raise EmptyCartError()
        for item in cart_items:
            if not item.product.is_active:
                raise ProductUnavailableError(item.product.name)
            if item.quantity > item.product.stock:
                raise InsufficientStockError(item.product.name)

    def _quote(self, cart_items: List[CartItem]) -> ShippingQuote:
        lines = [line_from_product(item.product, item.quantity) for item in cart_items]
        return calculate_shipping(lines, SqlShippingRateLookup(self.db))

    def create(self, customer_id: int, data: OrderCreate) -> Order:
        if not data.shipping_address:
            raise ValidationFailed("Shipping address is required")
        if not data.recipient_name:
            raise ValidationFailed("Recipient name is required")

        customer = self.db.get(Customer, customer_id)
        if customer is None or customer.is_archived:
            raise PermissionDenied("Customer account is not active")

        cart_items = self._load_cart(customer_id)
        self._validate_lines(cart_items)
        quote = self._quote(cart_items)

        try:
            order = self._place_order(customer_id, data, cart_items, quote)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order placed: {order.order_number}",
            extra={'extra_fields': {
                'order_id': order.id,
                'order_number': order.order_number,
                'customer_id': customer_id,
                'item_count': len(cart_items),
                'total_amount': order.total_amount,
            }},
        )
        # fresh read for the response; not part of the transaction
        self.db.expire_all()
        return self.get(order.id)

    def _place_order(self, customer_id: int, data: OrderCreate, cart_items: List[CartItem], quote: ShippingQuote) -> Order:
        """Insert order, snapshot items, decrement stock and clear the cart.

        Runs inside the caller's transaction. Product rows are locked in
        ascending id order; each decrement is conditional on enough stock so
        a concurrent purchase that got there first aborts this one.
        """
        product_ids = sorted({item.product_id for item in cart_items})
        self.db.execute(
            select(Product.id).where(Product.id.in_(product_ids)).order_by(Product.id).with_for_update()
        ).all()

        order = Order(
            order_number=self._generate_order_number(),
            customer_id=customer_id,
            subtotal_amount=quote.subtotal_amount,
            shipping_fee=quote.shipping_fee,
            total_amount=quote.total_amount,
            status=OrderStatus.PENDING.value,
            shipping_address=data.shipping_address,
            recipient_name=data.recipient_name,
            contact_phone=data.contact_phone or None,
            notes=data.notes,
        )
        self.db.add(order)
        self.db.flush()  # assign id

        for item in cart_items:
            product = item.product
            result = self.db.execute(
                update(Product)
                .where(
                    Product.id == product.id,
                    Product.is_active.is_(True),
                    Product.stock >= item.quantity,
                )
                .values(stock=Product.stock - item.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStockError(product.name)

            price = Decimal(product.price)
            self.db.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                price=price,
                quantity=item.quantity,
                subtotal=price * item.quantity,
            ))

        self.db.execute(
            delete(CartItem)
            .where(CartItem.customer_id == customer_id)
            .execution_options(synchronize_session=False)
        )
        self.db.flush()
        return order

    #############################
    # Status changes            #
    #############################

    def _locked(self, order_id: int) -> Optional[Order]:
        """Re-read the order under a row lock, discarding any stale copy in the session."""
        return self.db.scalars(
            self._detail_query()
            .where(Order.id == order_id)
            .with_for_update(of=Order)
            .execution_options(populate_existing=True)
        ).first()

    def _move(self, order: Order, expected: str, values: dict) -> None:
        """Compare-and-set on status; a concurrent change makes this one fail."""
        result = self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == expected)
            .values(updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Order was changed by another request; reload and try again")

    def _restock(self, order: Order) -> None:
        for item in order.items:
            self.db.execute(
                update(Product)
                .where(Product.id == item.product_id)
                .values(stock=Product.stock + item.quantity)
                .execution_options(synchronize_session=False)
            )

    def _cancel(self, order: Order, expected: str, by: CancelledBy, reason: Optional[str]) -> None:
        self._move(order, expected, {
            "status": OrderStatus.CANCELLED.value,
            "cancelled_at": utcnow(),
            "cancelled_by": by.value,
            "cancel_reason": reason or DEFAULT_CANCEL_REASONS[by],
        })
        # only the request that won the status change gives the stock back
        if self.settings.RESTOCK_ON_CANCEL:
            self._restock(order)

    def update_status(self, order_id: int, status: OrderStatus, cancel_reason: Optional[str] = None) -> Tuple[str, Order]:
        """Admin transition. Returns the previous status and the updated order."""
        try:
            order = self._locked(order_id)
            if not order:
                raise NotFoundError("Order not found")
            previous = order.status
            target = ensure_admin_transition(previous, status)
            if target == OrderStatus.CANCELLED:
                self._cancel(order, previous, CancelledBy.ADMIN, cancel_reason)
            else:
                self._move(order, previous, {"status": target.value})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order status changed: {order.order_number} {previous} -> {target.value}",
            extra={'extra_fields': {'order_id': order.id, 'from': previous, 'to': target.value}},
        )
        self.db.expire_all()
        return previous, self.get(order.id)

    def cancel_by_customer(self, order_id: int, customer_id: int, cancel_reason: Optional[str] = None) -> Tuple[str, Order]:
        try:
            order = self._locked(order_id)
            if not order:
                raise NotFoundError("Order not found")
            if order.customer_id != customer_id:
                raise PermissionDenied("Customers can only cancel their own orders")
            previous = order.status
            ensure_customer_cancellable(previous)
            self._cancel(order, previous, CancelledBy.CUSTOMER, cancel_reason)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order cancelled by customer: {order.order_number}",
            extra={'extra_fields': {'order_id': order.id, 'customer_id': customer_id, 'from': previous}},
        )
        self.db.expire_all()
        return previous, self.get(order.id)
