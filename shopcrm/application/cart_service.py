from sqlalchemy.orm import Session, selectinload
from shopcrm.domain.errors import NotFoundError, ValidationFailed
from shopcrm.domain.models import CartItem, Product
from .schemas import CartItemCreate, CartItemUpdate
from .shipping import ShippingQuote, SqlShippingRateLookup, calculate_shipping, line_from_product, quote_as_dict

class CartService:
    def __init__(self, db: Session):
        self.db = db

    def items(self, customer_id: int) -> list[CartItem]:
        return (
            self.db.query(CartItem)
            .options(selectinload(CartItem.product).selectinload(Product.category))
            .filter(CartItem.customer_id == customer_id)
            .order_by(CartItem.created_at, CartItem.id)
            .all()
        )

    def summary(self, customer_id: int) -> dict:
        """Cart contents with active products only, plus the shipping quote."""
        items = [item for item in self.items(customer_id) if item.product.is_active]
        quote: ShippingQuote = calculate_shipping(
            [line_from_product(item.product, item.quantity) for item in items],
            SqlShippingRateLookup(self.db),
        )
        return {
            "items": items,
            "item_count": sum(item.quantity for item in items),
            "subtotal_amount": quote.subtotal_amount,
            "shipping": quote_as_dict(quote),
        }

    def _active_product(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product or not product.is_active:
            raise NotFoundError("Product not found")
        return product

    def _own_item(self, customer_id: int, item_id: int) -> CartItem:
        item = self.db.query(CartItem).filter(
            CartItem.id == item_id, CartItem.customer_id == customer_id
        ).first()
        if not item:
            raise NotFoundError("Cart item not found")
        return item

    def add(self, customer_id: int, data: CartItemCreate) -> CartItem:
        product = self._active_product(data.product_id)
        item = self.db.query(CartItem).filter(
            CartItem.customer_id == customer_id, CartItem.product_id == product.id
        ).first()

        quantity = data.quantity + (item.quantity if item else 0)
        if quantity > product.stock:
            raise ValidationFailed(f'Only {product.stock} left in stock for product "{product.name}"')

        if item:
            item.quantity = quantity
        else:
            item = CartItem(customer_id=customer_id, product_id=product.id, quantity=quantity)
            self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update(self, customer_id: int, item_id: int, data: CartItemUpdate) -> CartItem:
        item = self._own_item(customer_id, item_id)
        product = self._active_product(item.product_id)
        if data.quantity > product.stock:
            raise ValidationFailed(f'Only {product.stock} left in stock for product "{product.name}"')
        item.quantity = data.quantity
        self.db.commit()
        self.db.refresh(item)
        return item

    def remove(self, customer_id: int, item_id: int) -> None:
        item = self._own_item(customer_id, item_id)
        self.db.delete(item)
        self.db.commit()
