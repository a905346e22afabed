"""E-mail templates, recipient selection and delivery.

Delivery goes through an ``EmailTransport``; the application only ships a
transport that logs the message, a real mail relay is plugged in through the
``get_email_transport`` dependency. Every attempt, delivered or not, leaves an
``EmailLog`` row.
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session

from shopcrm.core.logging_config import get_logger
from shopcrm.domain.errors import EmailDeliveryError, NotFoundError, ValidationFailed
from shopcrm.domain.models import Customer, CustomerTag, EmailLog, EmailSettings, EmailTemplate, Enrollment, utcnow
from .schemas import EmailTemplateCreate, EmailTemplateUpdate, RecipientQuery
from .settings_service import EmailSettingsStore

logger = get_logger(__name__)

TEMPLATE_FIELDS = ("id", "name", "subject", "is_default", "is_active")

# enrollments that still count as "taking the course"
CURRENT_ENROLLMENT_STATUSES = ("ENROLLED", "ACTIVE")

PLACEHOLDERS = {
    "{{customer_name}}": "name",
    "{{customer_email}}": "email",
}


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    to_name: Optional[str] = None
    customer_id: Optional[int] = None
    template_id: Optional[int] = None


class EmailTransport(Protocol):
    def send(self, settings: EmailSettings, message: EmailMessage) -> None: ...


class LoggingEmailTransport:
    """Writes the message to the log instead of handing it to a mail relay."""

    def send(self, settings: EmailSettings, message: EmailMessage) -> None:
        logger.info(
            f"Email to {message.to}: {message.subject}",
            extra={'extra_fields': {
                'smtp_host': settings.smtp_host,
                'customer_id': message.customer_id,
                'template_id': message.template_id,
            }},
        )


def render(text: str, customer) -> str:
    for placeholder, attribute in PLACEHOLDERS.items():
        text = text.replace(placeholder, getattr(customer, attribute) or "")
    return text


def resolve_recipients(db: Session, query: RecipientQuery) -> List[Customer]:
    """Non-archived customers matching any of the tag, course or id filters.

    ``include_all`` ignores the filters; no filters at all selects nobody.
    """
    base = db.query(Customer).filter(Customer.is_archived.is_(False))
    if query.include_all:
        return base.order_by(Customer.name, Customer.id).all()
    conditions = []
    if query.tag_ids:
        conditions.append(Customer.customer_tags.any(CustomerTag.tag_id.in_(query.tag_ids)))
    if query.course_ids:
        conditions.append(Customer.enrollments.any(and_(
            Enrollment.course_id.in_(query.course_ids),
            Enrollment.status.in_(CURRENT_ENROLLMENT_STATUSES),
        )))
    if query.customer_ids:
        conditions.append(Customer.id.in_(query.customer_ids))
    if not conditions:
        return []
    return base.filter(or_(*conditions)).order_by(Customer.name, Customer.id).all()


class EmailTemplateService:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[EmailTemplate]:
        return (
            self.db.query(EmailTemplate)
            .order_by(EmailTemplate.is_default.desc(), EmailTemplate.created_at.desc(), EmailTemplate.id.desc())
            .all()
        )

    def get(self, template_id: int) -> EmailTemplate:
        template = self.db.query(EmailTemplate).filter(EmailTemplate.id == template_id).first()
        if not template:
            raise NotFoundError("Template not found")
        return template

    def _clear_default(self, exclude_id: Optional[int] = None):
        statement = update(EmailTemplate).where(EmailTemplate.is_default.is_(True))
        if exclude_id is not None:
            statement = statement.where(EmailTemplate.id != exclude_id)
        self.db.execute(statement.values(is_default=False).execution_options(synchronize_session="fetch"))

    def create(self, data: EmailTemplateCreate) -> EmailTemplate:
        if data.is_default:
            self._clear_default()
        obj = EmailTemplate(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, template_id: int, data: EmailTemplateUpdate) -> EmailTemplate:
        template = self.get(template_id)
        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        if changes.get("is_default"):
            self._clear_default(exclude_id=template_id)
        for key, value in changes.items():
            setattr(template, key, value)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete(self, template_id: int) -> EmailTemplate:
        template = self.get(template_id)
        if template.is_default:
            raise ValidationFailed("The default template cannot be deleted")
        self.db.delete(template)
        self.db.commit()
        return template


class EmailDispatcher:
    def __init__(self, db: Session, transport: EmailTransport):
        self.db = db
        self.transport = transport

    def _settings(self) -> EmailSettings:
        settings = EmailSettingsStore(self.db).get()
        if not settings.is_active:
            raise EmailDeliveryError("Email sending is disabled")
        if not settings.smtp_user or not settings.smtp_pass:
            raise EmailDeliveryError("SMTP settings are incomplete")
        return settings

    def _log(self, message: EmailMessage, status: str, error: Optional[str] = None) -> EmailLog:
        entry = EmailLog(
            template_id=message.template_id,
            customer_id=message.customer_id,
            subject=message.subject,
            content=message.html,
            recipient_email=message.to,
            recipient_name=message.to_name,
            status=status,
            error_message=error,
            sent_at=utcnow() if status == "SENT" else None,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def send(self, message: EmailMessage) -> EmailLog:
        """Deliver one message. Raises ``EmailDeliveryError`` after logging a failure."""
        try:
            settings = self._settings()
            html = message.html
            if settings.signature:
                html += "<br><br>" + settings.signature.replace("\n", "<br>")
            self.transport.send(settings, EmailMessage(
                to=message.to,
                subject=message.subject,
                html=html,
                to_name=message.to_name,
                customer_id=message.customer_id,
                template_id=message.template_id,
            ))
        except Exception as exc:
            self.db.rollback()
            logger.warning(f"Email to {message.to} failed: {exc}")
            self._log(message, "FAILED", str(exc) or type(exc).__name__)
            if isinstance(exc, EmailDeliveryError):
                raise
            raise EmailDeliveryError(f"Failed to send email: {exc}") from exc
        return self._log(message, "SENT")

    def send_bulk(
        self,
        recipients: List[Customer],
        subject: str,
        content: str,
        template_id: Optional[int] = None,
    ) -> Tuple[int, int]:
        """Personalize and send to each recipient; returns (sent, failed)."""
        sent = failed = 0
        for customer in recipients:
            message = EmailMessage(
                to=customer.email,
                to_name=customer.name,
                subject=render(subject, customer),
                html=render(content, customer),
                customer_id=customer.id,
                template_id=template_id,
            )
            try:
                self.send(message)
                sent += 1
            except EmailDeliveryError:
                failed += 1
        logger.info(f"Bulk email finished: {sent} sent, {failed} failed")
        return sent, failed


def email_logs(
    db: Session,
    page: int,
    limit: int,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
) -> Tuple[List[EmailLog], int]:
    query = db.query(EmailLog)
    if status:
        query = query.filter(EmailLog.status == status)
    if customer_id is not None:
        query = query.filter(EmailLog.customer_id == customer_id)
    total = query.count()
    rows = query.order_by(EmailLog.created_at.desc(), EmailLog.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total
