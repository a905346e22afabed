from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from shopcrm.api.deps import CurrentUser, get_audit_writer, get_current_user, page_params, require_customer, require_permission, total_pages
from shopcrm.application.order_service import OrderService
from shopcrm.application.schemas import OrderCreate, OrderRead, OrderStatusUpdate, OrderUpdate, Page
from shopcrm.domain.models import Order
from shopcrm.domain.order_status import OrderStatus
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/orders", tags=["orders"])

def _audit_status(audit: AuditLogWriter, user: CurrentUser, previous: str, order: Order, request: Request):
    action = AuditAction.CANCEL if order.status == OrderStatus.CANCELLED.value else AuditAction.STATUS_CHANGE
    audit.record(
        user.actor,
        action,
        entity="order",
        entity_id=order.id,
        old_data={"status": previous},
        new_data={
            "status": order.status,
            "cancelled_by": order.cancelled_by,
            "cancel_reason": order.cancel_reason,
        },
        request=request,
    )

@router.get("/", response_model=Page[OrderRead])
def list_orders(
    paging: tuple[int, int] = Depends(page_params),
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[OrderStatus] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Customers see their own orders; admins need VIEW_ORDERS."""
    if not user.is_customer and not user.can(Permission.VIEW_ORDERS):
        raise HTTPException(status_code=403, detail="Permission denied")
    page, limit = paging
    service = OrderService(db)
    orders, total = service.list(
        page,
        limit,
        customer_id=user.id if user.is_customer else None,
        search=search,
        status=status,
    )
    return {"data": orders, "page": page, "total_pages": total_pages(total, limit), "total": total}

@router.post("/", response_model=OrderRead, status_code=201)
def create_order(
    payload: OrderCreate,
    request: Request,
    user: CurrentUser = Depends(require_customer),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    order = OrderService(db).create(user.id, payload)
    audit.record(
        user.actor,
        AuditAction.CREATE,
        entity="order",
        entity_id=order.id,
        new_data={
            "order_number": order.order_number,
            "total_amount": order.total_amount,
            "items": [{"product_id": i.product_id, "quantity": i.quantity} for i in order.items],
        },
        request=request,
    )
    return order

@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    if user.is_customer:
        return OrderService(db).get(order_id, customer_id=user.id)
    if not user.can(Permission.VIEW_ORDERS):
        raise HTTPException(status_code=403, detail="Permission denied")
    return OrderService(db).get(order_id)

@router.put("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_ORDERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    previous, order = OrderService(db).update_status(order_id, payload.status, payload.cancel_reason)
    _audit_status(audit, user, previous, order, request)
    return order

@router.put("/{order_id}", response_model=OrderRead)
def update_order(
    order_id: int,
    payload: OrderUpdate,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    """``{"action": "cancel"}`` from the owning customer, ``{"status": ...}`` from an admin."""
    service = OrderService(db)
    if user.is_customer:
        if payload.action != "cancel":
            raise HTTPException(status_code=400, detail="Customers can only cancel orders")
        previous, order = service.cancel_by_customer(order_id, user.id, payload.cancel_reason)
    else:
        if not user.can(Permission.EDIT_ORDERS):
            raise HTTPException(status_code=403, detail="Permission denied")
        target = OrderStatus.CANCELLED if payload.action == "cancel" else payload.status
        if target is None:
            raise HTTPException(status_code=400, detail="status is required")
        previous, order = service.update_status(order_id, target, payload.cancel_reason)
    _audit_status(audit, user, previous, order, request)
    return order

@router.delete("/{order_id}", response_model=OrderRead)
def cancel_order(
    order_id: int,
    request: Request,
    user: CurrentUser = Depends(require_customer),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    """Soft cancel by the owning customer; the order row is kept."""
    previous, order = OrderService(db).cancel_by_customer(order_id, user.id)
    _audit_status(audit, user, previous, order, request)
    return order
