from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, datetime, time, timedelta
from typing import Optional
from shopcrm.api.deps import CurrentUser, page_params, require_permission, total_pages
from shopcrm.application.schemas import AuditLogRead, Page
from shopcrm.domain.models import AuditLog
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/audit-logs", tags=["audit"])

@router.get("/", response_model=Page[AuditLogRead])
def list_audit_logs(
    paging: tuple[int, int] = Depends(page_params),
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    entity: Optional[str] = None,
    start: Optional[date] = Query(None, description="Inclusive start date"),
    end: Optional[date] = Query(None, description="Inclusive end date"),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
    db: Session = Depends(get_db),
):
    page, limit = paging
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action.upper())
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if entity:
        query = query.filter(AuditLog.entity == entity)
    if start:
        query = query.filter(AuditLog.created_at >= datetime.combine(start, time.min))
    if end:
        query = query.filter(AuditLog.created_at < datetime.combine(end + timedelta(days=1), time.min))

    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {"data": logs, "page": page, "total_pages": total_pages(total, limit), "total": total}
