from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import Optional
from shopcrm.api.deps import CurrentUser, get_audit_writer, get_current_user, page_params, require_permission, total_pages
from shopcrm.application.catalog_service import (
    CATEGORY_FIELDS, PRODUCT_FIELDS, SHIPPING_RATE_FIELDS,
    CategoryService, ProductService, ShippingRateService,
)
from shopcrm.application.schemas import (
    CategoryCreate, CategoryRead, CategoryUpdate, Page, ProductCreate, ProductRead, ProductUpdate,
    QuoteRequest, ShippingQuoteRead, ShippingRateCreate, ShippingRateRead, ShippingRateUpdate,
)
from shopcrm.application.shipping import SqlShippingRateLookup, calculate_shipping, line_from_product, quote_as_dict
from shopcrm.domain.errors import NotFoundError
from shopcrm.domain.models import Product
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

categories = APIRouter(prefix="/categories", tags=["categories"])
products = APIRouter(prefix="/products", tags=["products"])
shipping_rates = APIRouter(prefix="/shipping-rates", tags=["shipping"])
shipping = APIRouter(prefix="/shipping", tags=["shipping"])

#############################
# Categories                #
#############################

@categories.get("/", response_model=list[CategoryRead])
def list_categories(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return CategoryService(db).list()

@categories.post("/", response_model=CategoryRead, status_code=201)
def create_category(
    payload: CategoryCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    category = CategoryService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "category", category.id,
                 new_data=snapshot(category, CATEGORY_FIELDS), request=request)
    return category

@categories.put("/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = CategoryService(db)
    old_data = snapshot(service.get(category_id), CATEGORY_FIELDS)
    category = service.update(category_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "category", category.id,
                 old_data=old_data, new_data=snapshot(category, CATEGORY_FIELDS), request=request)
    return category

@categories.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    category = CategoryService(db).delete(category_id)
    audit.record(user.actor, AuditAction.DELETE, "category", category_id,
                 old_data=snapshot(category, CATEGORY_FIELDS), request=request)
    return None

#############################
# Products                  #
#############################

@products.get("/", response_model=Page[ProductRead])
def list_products(
    paging: tuple[int, int] = Depends(page_params),
    search: Optional[str] = Query(None, max_length=100),
    category_id: Optional[int] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Customers only ever see active products."""
    if not user.is_customer and not user.can(Permission.VIEW_PRODUCTS):
        raise HTTPException(status_code=403, detail="Permission denied")
    page, limit = paging
    items, total = ProductService(db).list(
        page, limit, search=search, category_id=category_id, active_only=user.is_customer
    )
    return {"data": items, "page": page, "total_pages": total_pages(total, limit), "total": total}

@products.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    if not user.is_customer and not user.can(Permission.VIEW_PRODUCTS):
        raise HTTPException(status_code=403, detail="Permission denied")
    return ProductService(db).get(product_id, active_only=user.is_customer)

@products.post("/", response_model=ProductRead, status_code=201)
def create_product(
    payload: ProductCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    product = ProductService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "product", product.id,
                 new_data=snapshot(product, PRODUCT_FIELDS), request=request)
    return product

@products.put("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = ProductService(db)
    old_data = snapshot(service.get(product_id), PRODUCT_FIELDS)
    product = service.update(product_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "product", product.id,
                 old_data=old_data, new_data=snapshot(product, PRODUCT_FIELDS), request=request)
    return product

@products.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    product = ProductService(db).delete(product_id)
    audit.record(user.actor, AuditAction.DELETE, "product", product_id,
                 old_data=snapshot(product, PRODUCT_FIELDS), request=request)
    return None

#############################
# Shipping rates            #
#############################

@shipping_rates.get("/", response_model=list[ShippingRateRead])
def list_shipping_rates(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db),
):
    return ShippingRateService(db).list()

@shipping_rates.get("/{rate_id}", response_model=ShippingRateRead)
def get_shipping_rate(
    rate_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db),
):
    return ShippingRateService(db).get(rate_id)

@shipping_rates.post("/", response_model=ShippingRateRead, status_code=201)
def create_shipping_rate(
    payload: ShippingRateCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    rate = ShippingRateService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "shipping_rate", rate.id,
                 new_data=snapshot(rate, SHIPPING_RATE_FIELDS), request=request)
    return rate

@shipping_rates.put("/{rate_id}", response_model=ShippingRateRead)
def update_shipping_rate(
    rate_id: int,
    payload: ShippingRateUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = ShippingRateService(db)
    old_data = snapshot(service.get(rate_id), SHIPPING_RATE_FIELDS)
    rate = service.update(rate_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "shipping_rate", rate.id,
                 old_data=old_data, new_data=snapshot(rate, SHIPPING_RATE_FIELDS), request=request)
    return rate

@shipping_rates.delete("/{rate_id}", status_code=204)
def delete_shipping_rate(
    rate_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    rate = ShippingRateService(db).delete(rate_id)
    audit.record(user.actor, AuditAction.DELETE, "shipping_rate", rate_id,
                 old_data=snapshot(rate, SHIPPING_RATE_FIELDS), request=request)
    return None

@shipping.post("/quote", response_model=ShippingQuoteRead)
def quote_shipping(payload: QuoteRequest, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    lines = []
    for item in payload.items:
        product = (
            db.query(Product)
            .options(selectinload(Product.category))
            .filter(Product.id == item.product_id)
            .first()
        )
        if not product or (user.is_customer and not product.is_active):
            raise NotFoundError("Product not found")
        lines.append(line_from_product(product, item.quantity))
    return quote_as_dict(calculate_shipping(lines, SqlShippingRateLookup(db)))
