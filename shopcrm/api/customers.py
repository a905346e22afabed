from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from shopcrm.api.deps import CurrentUser, get_audit_writer, page_params, require_permission, total_pages
from shopcrm.application.course_service import CourseService
from shopcrm.application.customer_service import CUSTOMER_FIELDS, CustomerService
from shopcrm.application.schemas import (
    CustomerCreate, CustomerRead, CustomerTagAssign, CustomerTagRead, CustomerUpdate, EnrollmentCreate,
    EnrollmentRead, Page,
)
from shopcrm.application.tag_service import TagService
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/customers", tags=["customers"])

@router.get("/", response_model=Page[CustomerRead])
def list_customers(
    paging: tuple[int, int] = Depends(page_params),
    search: Optional[str] = Query(None, max_length=100, description="Match name, email or phone"),
    include_archived: bool = False,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_CUSTOMERS)),
    db: Session = Depends(get_db),
):
    page, limit = paging
    customers, total = CustomerService(db).list(page, limit, search=search, include_archived=include_archived)
    return {"data": customers, "page": page, "total_pages": total_pages(total, limit), "total": total}

@router.get("/{customer_id}", response_model=CustomerRead)
def get_customer(
    customer_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_CUSTOMERS)),
    db: Session = Depends(get_db),
):
    return CustomerService(db).get(customer_id)

@router.post("/", response_model=CustomerRead, status_code=201)
def create_customer(
    payload: CustomerCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    customer = CustomerService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "customer", customer.id,
                 new_data=snapshot(customer, CUSTOMER_FIELDS), request=request)
    return customer

@router.put("/{customer_id}", response_model=CustomerRead)
def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = CustomerService(db)
    old_data = snapshot(service.get(customer_id), CUSTOMER_FIELDS)
    customer = service.update(customer_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "customer", customer.id,
                 old_data=old_data, new_data=snapshot(customer, CUSTOMER_FIELDS), request=request)
    return customer

@router.post("/{customer_id}/archive", response_model=CustomerRead)
def archive_customer(
    customer_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.ARCHIVE_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    customer = CustomerService(db).set_archived(customer_id, True)
    audit.record(user.actor, AuditAction.ARCHIVE, "customer", customer.id,
                 old_data={"is_archived": False}, new_data={"is_archived": True}, request=request)
    return customer

@router.post("/{customer_id}/unarchive", response_model=CustomerRead)
def unarchive_customer(
    customer_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.RESTORE_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    customer = CustomerService(db).set_archived(customer_id, False)
    audit.record(user.actor, AuditAction.RESTORE, "customer", customer.id,
                 old_data={"is_archived": True}, new_data={"is_archived": False}, request=request)
    return customer

#############################
# Tags & enrollments        #
#############################

@router.get("/{customer_id}/tags", response_model=list[CustomerTagRead])
def list_customer_tags(
    customer_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_CUSTOMERS)),
    db: Session = Depends(get_db),
):
    CustomerService(db).get(customer_id)
    return TagService(db).for_customer(customer_id)

@router.post("/{customer_id}/tags", response_model=CustomerTagRead, status_code=201)
def add_customer_tag(
    customer_id: int,
    payload: CustomerTagAssign,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = TagService(db)
    old_tags = [link.tag.name for link in service.for_customer(customer_id)]
    link = service.assign(customer_id, payload.tag_id)
    audit.record(user.actor, AuditAction.UPDATE, "customer_tags", customer_id,
                 old_data={"tags": old_tags},
                 new_data={"tags": [item.tag.name for item in service.for_customer(customer_id)]},
                 request=request)
    return link

@router.delete("/{customer_id}/tags/{tag_id}", status_code=204)
def remove_customer_tag(
    customer_id: int,
    tag_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = TagService(db)
    old_tags = [link.tag.name for link in service.for_customer(customer_id)]
    service.unassign(customer_id, tag_id)
    audit.record(user.actor, AuditAction.UPDATE, "customer_tags", customer_id,
                 old_data={"tags": old_tags},
                 new_data={"tags": [link.tag.name for link in service.for_customer(customer_id)]},
                 request=request)

@router.get("/{customer_id}/courses", response_model=list[EnrollmentRead])
def list_customer_courses(
    customer_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_CUSTOMERS)),
    db: Session = Depends(get_db),
):
    CustomerService(db).get(customer_id)
    return CourseService(db).enrollments_for(customer_id)

@router.post("/{customer_id}/courses", response_model=EnrollmentRead, status_code=201)
def enroll_customer(
    customer_id: int,
    payload: EnrollmentCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = CourseService(db)
    old_courses = [item.course.name for item in service.enrollments_for(customer_id)]
    enrollment = service.enroll(customer_id, payload.course_id)
    audit.record(user.actor, AuditAction.UPDATE, "customer_courses", customer_id,
                 old_data={"courses": old_courses},
                 new_data={"courses": [item.course.name for item in service.enrollments_for(customer_id)]},
                 request=request)
    return enrollment

@router.delete("/{customer_id}/courses/{enrollment_id}", status_code=204)
def unenroll_customer(
    customer_id: int,
    enrollment_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CUSTOMERS)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = CourseService(db)
    old_courses = [item.course.name for item in service.enrollments_for(customer_id)]
    service.unenroll(customer_id, enrollment_id)
    audit.record(user.actor, AuditAction.UPDATE, "customer_courses", customer_id,
                 old_data={"courses": old_courses},
                 new_data={"courses": [item.course.name for item in service.enrollments_for(customer_id)]},
                 request=request)
