from sqlalchemy import or_
from sqlalchemy.orm import Session
from shopcrm.auth_local import hash_password
from shopcrm.domain.errors import NotFoundError, ValidationFailed
from shopcrm.domain.models import Customer
from .schemas import CustomerCreate, CustomerUpdate, RegisterRequest
from typing import List, Optional, Tuple, Union

CUSTOMER_FIELDS = ("id", "name", "email", "phone", "address", "is_archived")

class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        include_archived: bool = False,
    ) -> Tuple[List[Customer], int]:
        query = self.db.query(Customer)
        if not include_archived:
            query = query.filter(Customer.is_archived.is_(False))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
            ))
        total = query.count()
        customers = query.order_by(Customer.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return customers, total

    def get(self, customer_id: int) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    def _ensure_unique_email(self, email: str, exclude_id: Optional[int] = None):
        query = self.db.query(Customer).filter(Customer.email == email)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first():
            raise ValidationFailed("Email address is already registered")

    def create(self, data: Union[CustomerCreate, RegisterRequest]) -> Customer:
        email = data.email.strip().lower()
        self._ensure_unique_email(email)
        obj = Customer(
            name=data.name.strip(),
            email=email,
            phone=data.phone,
            address=data.address,
            password_hash=hash_password(data.password) if data.password else None,
        )
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, customer_id: int, data: CustomerUpdate) -> Customer:
        customer = self.get(customer_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()
            self._ensure_unique_email(changes["email"], exclude_id=customer_id)
        for key, value in changes.items():
            if value is not None or key in ("phone", "address"):
                setattr(customer, key, value)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def set_archived(self, customer_id: int, archived: bool) -> Customer:
        customer = self.get(customer_id)
        if customer.is_archived == archived:
            raise ValidationFailed("Customer is already archived" if archived else "Customer is not archived")
        customer.is_archived = archived
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def by_email(self, email: str) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.email == email.strip().lower()).first()
