from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Literal, Optional
from shopcrm.api.deps import CurrentUser, require_permission
from shopcrm.application.report_service import SalesReportService
from shopcrm.application.schemas import SalesReport
from shopcrm.domain.errors import ValidationFailed
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.db import get_db

router = APIRouter(tags=["reports"])

@router.get("/sales-report", response_model=SalesReport)
def sales_report(
    report_type: Literal["daily", "monthly", "product", "customer"] = Query("daily", alias="type"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ORDERS)),
    db: Session = Depends(get_db),
):
    """Sales totals excluding cancelled orders; defaults to the last 30 days."""
    if start_date and end_date and start_date > end_date:
        raise ValidationFailed("start_date must not be after end_date")
    return SalesReportService(db).build(report_type, start_date, end_date, limit)
