from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from shopcrm.api.deps import CurrentUser, get_audit_writer, require_permission
from shopcrm.application.schemas import TagCreate, TagRead, TagUpdate
from shopcrm.application.tag_service import TAG_FIELDS, TagService
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/tags", tags=["tags"])

@router.get("/", response_model=list[TagRead])
def list_tags(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_TAGS)),
    db: Session = Depends(get_db),
):
    return TagService(db).list()

@router.get("/{tag_id}", response_model=TagRead)
def get_tag(
    tag_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_TAGS)),
    db: Session = Depends(get_db),
):
    return TagService(db).get(tag_id)

@router.post("/", response_model=TagRead, status_code=201)
def create_tag(
    payload: TagCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_TAGS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    tag = TagService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "tag", tag.id,
                 new_data=snapshot(tag, TAG_FIELDS), request=request)
    return tag

@router.put("/{tag_id}", response_model=TagRead)
def update_tag(
    tag_id: int,
    payload: TagUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_TAGS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = TagService(db)
    old_data = snapshot(service.get(tag_id), TAG_FIELDS)
    tag = service.update(tag_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "tag", tag.id,
                 old_data=old_data, new_data=snapshot(tag, TAG_FIELDS), request=request)
    return tag

@router.delete("/{tag_id}", status_code=204)
def delete_tag(
    tag_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_TAGS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = TagService(db)
    old_data = snapshot(service.get(tag_id), TAG_FIELDS)
    service.delete(tag_id)
    audit.record(user.actor, AuditAction.DELETE, "tag", tag_id, old_data=old_data, request=request)
