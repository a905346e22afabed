from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from shopcrm.api.deps import get_audit_writer
from shopcrm.application.customer_service import CUSTOMER_FIELDS, CustomerService
from shopcrm.application.schemas import CustomerRead, RegisterRequest, TokenRequest, TokenResponse
from shopcrm.auth_local import create_access_token, verify_password
from shopcrm.core.logging_config import get_logger
from shopcrm.domain.models import AdminUser
from shopcrm.infrastructure.audit import Actor, AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/token", response_model=TokenResponse)
def issue_token(payload: TokenRequest, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if payload.user_type == "admin":
        admin = db.query(AdminUser).filter(AdminUser.email == email).first()
        if not admin or not admin.is_active or not verify_password(payload.password, admin.password_hash):
            logger.warning("Admin login failed", extra={'extra_fields': {'email': email}})
            raise HTTPException(status_code=401, detail="Invalid email or password")
        return {"access_token": create_access_token(str(admin.id), "admin", role=admin.role)}

    customer = CustomerService(db).by_email(email)
    if not customer or not verify_password(payload.password, customer.password_hash):
        logger.warning("Customer login failed", extra={'extra_fields': {'email': email}})
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if customer.is_archived:
        raise HTTPException(status_code=403, detail="Account is archived")
    return {"access_token": create_access_token(str(customer.id), "customer")}

@router.post("/register", response_model=CustomerRead, status_code=201)
def register(
    payload: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    customer = CustomerService(db).create(payload)
    audit.record(
        Actor(user_id=customer.id, user_type="customer"),
        AuditAction.CREATE,
        entity="customer",
        entity_id=customer.id,
        new_data=snapshot(customer, CUSTOMER_FIELDS),
        request=request,
    )
    return customer
