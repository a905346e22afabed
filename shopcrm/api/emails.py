from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Literal, Optional
from shopcrm.api.deps import CurrentUser, get_audit_writer, page_params, require_permission, total_pages
from shopcrm.application.email_service import (
    TEMPLATE_FIELDS, EmailDispatcher, EmailMessage, EmailTemplateService, EmailTransport,
    LoggingEmailTransport, email_logs, resolve_recipients,
)
from shopcrm.application.schemas import (
    BulkSendRequest, BulkSendResult, EmailLogRead, EmailTemplateCreate, EmailTemplateRead,
    EmailTemplateUpdate, Page, RecipientPreview, RecipientQuery, SendEmailRequest,
)
from shopcrm.domain.errors import ValidationFailed
from shopcrm.domain.permissions import Permission
from shopcrm.infrastructure.audit import AuditAction, AuditLogWriter, snapshot
from shopcrm.infrastructure.db import get_db

templates = APIRouter(prefix="/email-templates", tags=["email"])
emails = APIRouter(prefix="/emails", tags=["email"])

def get_email_transport() -> EmailTransport:
    return LoggingEmailTransport()

#############################
# Templates                 #
#############################

@templates.get("/", response_model=list[EmailTemplateRead])
def list_templates(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_EMAIL_TEMPLATES)),
    db: Session = Depends(get_db),
):
    return EmailTemplateService(db).list()

@templates.get("/{template_id}", response_model=EmailTemplateRead)
def get_template(
    template_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_EMAIL_TEMPLATES)),
    db: Session = Depends(get_db),
):
    return EmailTemplateService(db).get(template_id)

@templates.post("/", response_model=EmailTemplateRead, status_code=201)
def create_template(
    payload: EmailTemplateCreate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_EMAIL_TEMPLATES)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    template = EmailTemplateService(db).create(payload)
    audit.record(user.actor, AuditAction.CREATE, "email_template", template.id,
                 new_data=snapshot(template, TEMPLATE_FIELDS), request=request)
    return template

@templates.put("/{template_id}", response_model=EmailTemplateRead)
def update_template(
    template_id: int,
    payload: EmailTemplateUpdate,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.EDIT_EMAIL_TEMPLATES)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = EmailTemplateService(db)
    old_data = snapshot(service.get(template_id), TEMPLATE_FIELDS)
    template = service.update(template_id, payload)
    audit.record(user.actor, AuditAction.UPDATE, "email_template", template.id,
                 old_data=old_data, new_data=snapshot(template, TEMPLATE_FIELDS), request=request)
    return template

@templates.delete("/{template_id}", status_code=204)
def delete_template(
    template_id: int,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_EMAIL_TEMPLATES)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
):
    service = EmailTemplateService(db)
    old_data = snapshot(service.get(template_id), TEMPLATE_FIELDS)
    service.delete(template_id)
    audit.record(user.actor, AuditAction.DELETE, "email_template", template_id, old_data=old_data, request=request)

#############################
# Sending                   #
#############################

@emails.post("/preview-recipients", response_model=RecipientPreview)
def preview_recipients(
    payload: RecipientQuery,
    user: CurrentUser = Depends(require_permission(Permission.SEND_BULK_EMAIL)),
    db: Session = Depends(get_db),
):
    customers = resolve_recipients(db, payload)
    return {"customers": customers, "count": len(customers)}

@emails.post("/bulk-send", response_model=BulkSendResult, status_code=201)
def bulk_send(
    payload: BulkSendRequest,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.SEND_BULK_EMAIL)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
    transport: EmailTransport = Depends(get_email_transport),
):
    if payload.template_id is not None:
        EmailTemplateService(db).get(payload.template_id)
    recipients = resolve_recipients(db, payload)
    if not recipients:
        raise ValidationFailed("No recipients found")
    addresses = [customer.email for customer in recipients]
    sent, failed = EmailDispatcher(db, transport).send_bulk(
        recipients, payload.subject, payload.content, template_id=payload.template_id,
    )
    audit.record(user.actor, AuditAction.SEND_EMAIL, "email", None,
                 new_data={"recipients": addresses, "sent": sent, "failed": failed}, request=request)
    return {"total_count": len(recipients), "success_count": sent, "failed_count": failed}

@emails.post("/send", status_code=201)
def send_email(
    payload: SendEmailRequest,
    request: Request,
    user: CurrentUser = Depends(require_permission(Permission.SEND_INDIVIDUAL_EMAIL)),
    db: Session = Depends(get_db),
    audit: AuditLogWriter = Depends(get_audit_writer),
    transport: EmailTransport = Depends(get_email_transport),
):
    entry = EmailDispatcher(db, transport).send(EmailMessage(
        to=payload.recipient_email,
        to_name=payload.recipient_name,
        subject=payload.subject,
        html=payload.content,
        customer_id=payload.customer_id,
        template_id=payload.template_id,
    ))
    audit.record(user.actor, AuditAction.SEND_EMAIL, "email", entry.id,
                 new_data={"recipients": [payload.recipient_email]}, request=request)
    return {"message": "Email sent successfully", "log_id": entry.id}

@emails.get("/logs", response_model=Page[EmailLogRead])
def list_email_logs(
    paging: tuple[int, int] = Depends(page_params),
    status: Optional[Literal["SENT", "FAILED"]] = Query(None),
    customer_id: Optional[int] = None,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_EMAIL_LOGS)),
    db: Session = Depends(get_db),
):
    page, limit = paging
    rows, total = email_logs(db, page, limit, status=status, customer_id=customer_id)
    return {"data": rows, "page": page, "total_pages": total_pages(total, limit), "total": total}
