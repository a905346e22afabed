from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from shopcrm.api.deps import CurrentUser, get_audit_writer, require_permission
from shopcrm.application.course_service import COURSE_FIELDS, CourseService
from shopcrm.application.schemas import CourseCreate, CourseRead, CourseUpdate
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/courses", tags=["courses"])

@router.get("/", response_model=list[CourseRead])
def list_courses(
    include_inactive: bool = True,
    search: Optional[str] = Query(None, max_length=100),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_COURSES)),
    db: Session = Depends(get_db),
):
    return CourseService(db).list(include_inactive=include_inactive, search=search)

@router.get("/{course_id}", response_model=CourseRead)
def get_course(
    course_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_COURSES)),
    db: Session = Depends(get_db),
):
    return CourseService(db).get(course_id)

@router.post("/", response_model=CourseRead, status_code=201)
def create_course(
    payload: CourseCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_COURSES)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    course = CourseService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "course", course.id,
                 new_data=snapshot(course, COURSE_FIELDS), request=request)
    return course

@router.put("/{course_id}", response_model=CourseRead)
def update_course(
    course_id: int,
    payload: CourseUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_COURSES)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = CourseService(db)
    old_data = snapshot(service.get(course_id), COURSE_FIELDS)
    course = service.update(course_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "course", course.id,
                 old_data=old_data, new_data=snapshot(course, COURSE_FIELDS), request=request)
    return course

@router.delete("/{course_id}", status_code=204)
def delete_course(
    course_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_COURSES)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = CourseService(db)
    old_data = snapshot(service.get(course_id), COURSE_FIELDS)
    service.delete(course_id)
    audit.record(user.actor, AuditAction.DELETE, "course", course_id, old_data=old_data, request=request)
