from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload
from shopcrm.domain.errors import ConflictError, NotFoundError, ValidationFailed
from shopcrm.domain.models import Category, OrderItem, Product, ShippingRate
from .schemas import (
    CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate,
    ShippingRateCreate, ShippingRateUpdate,
)
from typing import List, Optional, Tuple

CATEGORY_FIELDS = ("id", "name", "description", "category_type", "sort_order")
PRODUCT_FIELDS = ("id", "name", "description", "price", "stock", "image_url", "is_active", "category_id")
SHIPPING_RATE_FIELDS = ("id", "category_id", "shipping_fee", "free_shipping_threshold", "is_active")

class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def list(self):
        return self.db.query(Category).order_by(Category.sort_order, Category.id).all()

    def get(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError("Category not found")
        return category

    def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None):
        query = self.db.query(Category).filter(Category.name == name)
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        if query.first():
            raise ValidationFailed("Category name already exists")

    def create(self, data: CategoryCreate) -> Category:
        self._ensure_unique_name(data.name)
        obj = Category(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, category_id: int, data: CategoryUpdate) -> Category:
        category = self.get(category_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is not None:
            self._ensure_unique_name(changes["name"], exclude_id=category_id)
        for key, value in changes.items():
            if value is not None:
                setattr(category, key, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete(self, category_id: int) -> Category:
        category = self.get(category_id)
        product_count = self.db.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar()
        if product_count:
            raise ValidationFailed("Cannot delete a category that still has products")
        self.db.query(ShippingRate).filter(ShippingRate.category_id == category_id).delete()
        self.db.delete(category)
        self.db.commit()
        return category

class ProductService:
    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        active_only: bool = False,
    ) -> Tuple[List[Product], int]:
        query = self.db.query(Product)
        if active_only:
            query = query.filter(Product.is_active.is_(True))
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

        total = query.count()
        products = (
            query.options(selectinload(Product.category))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return products, total

    def get(self, product_id: int, active_only: bool = False) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product or (active_only and not product.is_active):
            raise NotFoundError("Product not found")
        return product

    def _check_category(self, category_id: Optional[int]):
        if category_id is not None and not self.db.get(Category, category_id):
            raise ValidationFailed("Category does not exist")

    def create(self, data: ProductCreate) -> Product:
        self._check_category(data.category_id)
        obj = Product(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, product_id: int, data: ProductUpdate) -> Product:
        product = self.get(product_id)
        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes:
            self._check_category(changes["category_id"])
        for key, value in changes.items():
            # category_id may be cleared explicitly; other fields ignore nulls
            if value is not None or key == "category_id":
                setattr(product, key, value)
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete(self, product_id: int) -> Product:
        product = self.get(product_id)
        ordered = self.db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
        if ordered:
            raise ConflictError("Product is referenced by existing orders; deactivate it instead")
        self.db.delete(product)
        self.db.commit()
        return product

class ShippingRateService:
    def __init__(self, db: Session):
        self.db = db

    def list(self):
        return (
            self.db.query(ShippingRate)
            .options(selectinload(ShippingRate.category))
            .order_by(ShippingRate.category_id.is_not(None), ShippingRate.category_id, ShippingRate.id)
            .all()
        )

    def get(self, rate_id: int) -> ShippingRate:
        rate = self.db.query(ShippingRate).filter(ShippingRate.id == rate_id).first()
        if not rate:
            raise NotFoundError("Shipping rate not found")
        return rate

    def _ensure_single_active_default(self, exclude_id: Optional[int] = None):
        query = self.db.query(ShippingRate).filter(
            ShippingRate.category_id.is_(None), ShippingRate.is_active.is_(True)
        )
        if exclude_id is not None:
            query = query.filter(ShippingRate.id != exclude_id)
        if query.first():
            raise ValidationFailed("An active default shipping rate already exists")

    def create(self, data: ShippingRateCreate) -> ShippingRate:
        if data.category_id is not None:
            if not self.db.get(Category, data.category_id):
                raise ValidationFailed("Category does not exist")
            existing = self.db.query(ShippingRate).filter(ShippingRate.category_id == data.category_id).first()
            if existing:
                raise ValidationFailed("Shipping rate for this category already exists")
        elif data.is_active:
            self._ensure_single_active_default()

        obj = ShippingRate(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, rate_id: int, data: ShippingRateUpdate) -> ShippingRate:
        rate = self.get(rate_id)
        changes = data.model_dump(exclude_unset=True)
        if rate.category_id is None and changes.get("is_active"):
            self._ensure_single_active_default(exclude_id=rate.id)
        for key, value in changes.items():
            # clearing the threshold is allowed
            if value is not None or key == "free_shipping_threshold":
                setattr(rate, key, value)
        self.db.commit()
        self.db.refresh(rate)
        return rate

    def delete(self, rate_id: int) -> ShippingRate:
        rate = self.get(rate_id)
        self.db.delete(rate)
        self.db.commit()
        return rate
