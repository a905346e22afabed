"""Append-only audit trail for administrative actions.

The writer owns its session factory and records after the caller's own
transaction has committed; any failure is logged and dropped so the primary
operation is never affected.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from shopcrm.core.logging_config import get_logger
from shopcrm.domain.models import AuditLog

logger = get_logger(__name__)


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ARCHIVE = "ARCHIVE"
    RESTORE = "RESTORE"
    STATUS_CHANGE = "STATUS_CHANGE"
    CANCEL = "CANCEL"
    SETTING_CHANGE = "SETTING_CHANGE"
    SEND_EMAIL = "SEND_EMAIL"


@dataclass(frozen=True)
class Actor:
    user_id: int
    user_type: str = "admin"


def _jsonable(data: Optional[dict]) -> Optional[dict]:
    if data is None:
        return None
    return json.loads(json.dumps(data, default=str))


def snapshot(obj, fields: tuple[str, ...]) -> dict:
    """Column values used as the audit old/new data."""
    return {name: getattr(obj, name) for name in fields}


def client_ip(request: Optional[Request]) -> str:
    if request is None:
        return "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


class AuditLogWriter:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(
        self,
        actor: Actor,
        action: AuditAction,
        entity: Optional[str] = None,
        entity_id: Any = None,
        old_data: Optional[dict] = None,
        new_data: Optional[dict] = None,
        request: Optional[Request] = None,
    ) -> None:
        try:
            with self.session_factory() as db:
                db.add(AuditLog(
                    user_id=actor.user_id,
                    user_type=actor.user_type,
                    action=AuditAction(action).value,
                    entity=entity,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    old_data=_jsonable(old_data),
                    new_data=_jsonable(new_data),
                    ip_address=client_ip(request),
                    user_agent=request.headers.get("user-agent", "unknown") if request is not None else "unknown",
                ))
                db.commit()
        except Exception:
            logger.error(
                "Failed to write audit log",
                exc_info=True,
                extra={'extra_fields': {
                    'action': str(action),
                    'entity': entity,
                    'entity_id': entity_id,
                    'user_id': actor.user_id,
                }},
            )
