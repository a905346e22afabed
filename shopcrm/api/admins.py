from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from shopcrm.api.deps import CurrentUser, get_audit_writer, require_permission
from shopcrm.application.admin_service import ADMIN_FIELDS, AdminService
from shopcrm.application.schemas import AdminCreate, AdminRead, AdminUpdate
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/admins", tags=["admins"])

def _service(db: Session, user: CurrentUser) -> AdminService:
    return AdminService(db, can_grant_owner=user.can(Permission.MANAGE_PERMISSIONS))

@router.get("/", response_model=list[AdminRead])
def list_admins(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ADMINS)),
    db: Session = Depends(get_db),
):
    return _service(db, user).list()

@router.get("/{admin_id}", response_model=AdminRead)
def get_admin(
    admin_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ADMINS)),
    db: Session = Depends(get_db),
):
    return _service(db, user).get(admin_id)

@router.post("/", response_model=AdminRead, status_code=201)
def create_admin(
    payload: AdminCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_ADMINS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    admin = _service(db, user).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "admin", admin.id,
                 new_data=snapshot(admin, ADMIN_FIELDS), request=request)
    return admin

@router.put("/{admin_id}", response_model=AdminRead)
def update_admin(
    admin_id: int,
    payload: AdminUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_ADMINS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = _service(db, user)
    old_data = snapshot(service.get(admin_id), ADMIN_FIELDS)
    admin = service.update(admin_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "admin", admin.id,
                 old_data=old_data, new_data=snapshot(admin, ADMIN_FIELDS), request=request)
    return admin

@router.delete("/{admin_id}", status_code=204)
def delete_admin(
    admin_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_ADMINS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = _service(db, user)
    old_data = snapshot(service.get(admin_id), ADMIN_FIELDS)
    service.delete(admin_id, acting_admin_id=user.id)
    audit.record(user.actor, AuditAction.DELETE, "admin", admin_id, old_data=old_data, request=request)
