from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from shopcrm.api.deps import CurrentUser, get_audit_writer, require_permission
from shopcrm.application.schemas import (
    EmailSettingsRead, EmailSettingsUpdate, PaymentSettingsRead, PaymentSettingsUpdate,
    PublicPaymentSettings, SystemSettingsRead, SystemSettingsUpdate,
)
from shopcrm.application.settings_service import (
    EmailSettingsStore, PaymentSettingsStore, SettingsStore, SystemSettingsStore,
)
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter
from shopcrm.infrastructure.db import get_db

router = APIRouter(tags=["settings"])

def get_system_settings_store(db: Session = Depends(get_db)) -> SettingsStore:
    return SystemSettingsStore(db)

def get_email_settings_store(db: Session = Depends(get_db)) -> SettingsStore:
    return EmailSettingsStore(db)

def get_payment_settings_store(db: Session = Depends(get_db)) -> SettingsStore:
    return PaymentSettingsStore(db)

def _write(store: SettingsStore, changes: dict, user: CurrentUser, audit: AuditLogWriter, request: Request, entity: str):
    previous, row = store.update(changes)
    audit.record(
        user.actor,
        AuditAction.SETTING_CHANGE,
        entity=entity,
        entity_id=row.id,
        old_data={k: v for k, v in store.masked_values(previous).items() if k in changes},
        new_data={k: v for k, v in store.masked(row).items() if k in changes},
        request=request,
    )
    return row

@router.get("/system-settings", response_model=SystemSettingsRead)
def get_system_settings(store: SettingsStore = Depends(get_system_settings_store)):
    return store.get()

@router.put("/system-settings", response_model=SystemSettingsRead)
def update_system_settings(
    payload: SystemSettingsUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_SYSTEM_SETTINGS)),
    store: SettingsStore = Depends(get_system_settings_store),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    return _write(store, payload.model_dump(exclude_unset=True), user, audit, request, "system_settings")

@router.get("/email-settings", response_model=EmailSettingsRead)
def get_email_settings(
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_EMAIL_SETTINGS)),
    store: SettingsStore = Depends(get_email_settings_store),
):
    return store.masked(store.get())

@router.put("/email-settings", response_model=EmailSettingsRead)
def update_email_settings(
    payload: EmailSettingsUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_EMAIL_SETTINGS)),
    store: SettingsStore = Depends(get_email_settings_store),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    row = _write(store, payload.model_dump(exclude_unset=True), user, audit, request, "email_settings")
    return store.masked(row)

@router.get("/payment-settings", response_model=PaymentSettingsRead)
def get_payment_settings(
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PAYMENT_SETTINGS)),
    store: SettingsStore = Depends(get_payment_settings_store),
):
    return store.masked(store.get())

@router.put("/payment-settings", response_model=PaymentSettingsRead)
def update_payment_settings(
    payload: PaymentSettingsUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_PAYMENT_SETTINGS)),
    store: SettingsStore = Depends(get_payment_settings_store),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("currency"):
        changes["currency"] = changes["currency"].lower()
    row = _write(store, changes, user, audit, request, "payment_settings")
    return store.masked(row)

@router.get("/payment-settings/public", response_model=PublicPaymentSettings)
def get_public_payment_settings(store: SettingsStore = Depends(get_payment_settings_store)):
    """Publishable key and display options only."""
    return store.get()
