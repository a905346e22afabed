"""Request dependencies: bearer-token identity, permission gates, audit writer."""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from shopcrm.auth_local import decode_access_token
from shopcrm.core.logging_config import set_request_context
from shopcrm.core_settings import get_settings
from shopcrm.domain.permissions import Permission, has_permission
from shopcrm.infrastructure.audit import Actor, AuditLogWriter
from shopcrm.infrastructure.db import SessionLocal

BEARER_PREFIX = "Bearer "

@dataclass(frozen=True)
class CurrentUser:
    id: int
    user_type: str
    role: Optional[str] = None

    @property
    def is_customer(self) -> bool:
        return self.user_type == "customer"

    @property
    def is_admin(self) -> bool:
        return self.user_type == "admin"

    def can(self, permission: Permission) -> bool:
        return self.is_admin and has_permission(self.role, permission)

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.id, user_type=self.user_type)

def verify_token(request: Request) -> dict:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Missing token")
    token = auth_header.split(" ", 1)[1]
    token_data = decode_access_token(token)
    if not token_data:
        raise HTTPException(status_code=401, detail="Invalid token")
    return token_data

def get_current_user(token_data: dict = Depends(verify_token)) -> CurrentUser:
    try:
        user = CurrentUser(
            id=int(token_data["sub"]),
            user_type=token_data["user_type"],
            role=token_data.get("role"),
        )
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    set_request_context(user_id=f"{user.user_type}:{user.id}")
    return user

def require_customer(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_customer:
        raise HTTPException(status_code=403, detail="Customer access required")
    return user

def require_permission(permission: Permission):
    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.can(permission):
            raise HTTPException(status_code=403, detail="Permission denied")
        return user
    return dependency

def get_audit_writer() -> AuditLogWriter:
    return AuditLogWriter(SessionLocal)

def total_pages(total: int, limit: int) -> int:
    return -(-total // limit)

def page_params(page: int = 1, limit: Optional[int] = None) -> tuple[int, int]:
    settings = get_settings()
    page = max(page, 1)
    if limit is None:
        limit = settings.DEFAULT_PAGE_SIZE
    limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)
    return page, limit
