from sqlalchemy.orm import Session
from shopcrm.auth_local import hash_password
from shopcrm.domain.errors import NotFoundError, PermissionDenied, ValidationFailed
from shopcrm.domain.models import AdminUser
from shopcrm.domain.permissions import UserRole
from .schemas import AdminCreate, AdminUpdate
from typing import List, Optional

ADMIN_FIELDS = ("id", "name", "email", "role", "is_active")

class AdminService:
    """Admin accounts. ``can_grant_owner`` is whether the acting admin may hand out the OWNER role."""

    def __init__(self, db: Session, can_grant_owner: bool = False):
        self.db = db
        self.can_grant_owner = can_grant_owner

    def list(self) -> List[AdminUser]:
        return self.db.query(AdminUser).order_by(AdminUser.created_at.desc(), AdminUser.id.desc()).all()

    def get(self, admin_id: int) -> AdminUser:
        admin = self.db.query(AdminUser).filter(AdminUser.id == admin_id).first()
        if not admin:
            raise NotFoundError("Admin not found")
        return admin

    def _ensure_unique_email(self, email: str, exclude_id: Optional[int] = None):
        query = self.db.query(AdminUser).filter(AdminUser.email == email)
        if exclude_id is not None:
            query = query.filter(AdminUser.id != exclude_id)
        if query.first():
            raise ValidationFailed("Email address is already in use")

    def _ensure_role_allowed(self, role: str):
        if role == UserRole.OWNER.value and not self.can_grant_owner:
            raise PermissionDenied("Only an owner can grant the OWNER role")

    def create(self, data: AdminCreate) -> AdminUser:
        email = data.email.strip().lower()
        self._ensure_unique_email(email)
        self._ensure_role_allowed(data.role)
        admin = AdminUser(
            name=data.name.strip(),
            email=email,
            role=data.role,
            password_hash=hash_password(data.password),
            is_active=True,
        )
        self.db.add(admin)
        self.db.commit()
        self.db.refresh(admin)
        return admin

    def update(self, admin_id: int, data: AdminUpdate) -> AdminUser:
        admin = self.get(admin_id)
        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            self._ensure_unique_email(changes["email"], exclude_id=admin_id)
        if "role" in changes and changes["role"] != admin.role:
            # demoting an owner takes the same right as promoting one
            self._ensure_role_allowed(UserRole.OWNER.value if admin.role == UserRole.OWNER.value else changes["role"])
        password = changes.pop("password", None)
        if password:
            admin.password_hash = hash_password(password)
        for key, value in changes.items():
            setattr(admin, key, value)
        self.db.commit()
        self.db.refresh(admin)
        return admin

    def delete(self, admin_id: int, acting_admin_id: int) -> AdminUser:
        if admin_id == acting_admin_id:
            raise ValidationFailed("You cannot delete your own account")
        admin = self.get(admin_id)
        self.db.delete(admin)
        self.db.commit()
        return admin
