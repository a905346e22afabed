from sqlalchemy.orm import Session
from shopcrm.domain.errors import NotFoundError, ValidationFailed
from shopcrm.domain.models import Customer, CustomerTag, Tag
from .schemas import TagCreate, TagUpdate
from typing import List, Optional

TAG_FIELDS = ("id", "name", "color", "description")

class TagService:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[Tag]:
        return self.db.query(Tag).order_by(Tag.name).all()

    def get(self, tag_id: int) -> Tag:
        tag = self.db.query(Tag).filter(Tag.id == tag_id).first()
        if not tag:
            raise NotFoundError("Tag not found")
        return tag

    def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None):
        query = self.db.query(Tag).filter(Tag.name == name)
        if exclude_id is not None:
            query = query.filter(Tag.id != exclude_id)
        if query.first():
            raise ValidationFailed("A tag with this name already exists")

    def create(self, data: TagCreate) -> Tag:
        self._ensure_unique_name(data.name)
        obj = Tag(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, tag_id: int, data: TagUpdate) -> Tag:
        tag = self.get(tag_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            self._ensure_unique_name(changes["name"], exclude_id=tag_id)
        for key, value in changes.items():
            if value is not None or key == "description":
                setattr(tag, key, value)
        self.db.commit()
        self.db.refresh(tag)
        return tag

    def delete(self, tag_id: int) -> Tag:
        tag = self.get(tag_id)
        in_use = self.db.query(CustomerTag).filter(CustomerTag.tag_id == tag_id).count()
        if in_use:
            raise ValidationFailed("Tag is still assigned to customers; remove it from them first")
        self.db.delete(tag)
        self.db.commit()
        return tag

    def for_customer(self, customer_id: int) -> List[CustomerTag]:
        return (
            self.db.query(CustomerTag)
            .filter(CustomerTag.customer_id == customer_id)
            .order_by(CustomerTag.id)
            .all()
        )

    def assign(self, customer_id: int, tag_id: int) -> CustomerTag:
        if not self.db.query(Customer).filter(Customer.id == customer_id).first():
            raise NotFoundError("Customer not found")
        self.get(tag_id)
        existing = (
            self.db.query(CustomerTag)
            .filter(CustomerTag.customer_id == customer_id, CustomerTag.tag_id == tag_id)
            .first()
        )
        if existing:
            raise ValidationFailed("Tag already associated with customer")
        link = CustomerTag(customer_id=customer_id, tag_id=tag_id)
        self.db.add(link)
        self.db.commit()
        self.db.refresh(link)
        return link

    def unassign(self, customer_id: int, tag_id: int) -> None:
        link = (
            self.db.query(CustomerTag)
            .filter(CustomerTag.customer_id == customer_id, CustomerTag.tag_id == tag_id)
            .first()
        )
        if not link:
            raise NotFoundError("Tag association not found")
        self.db.delete(link)
        self.db.commit()
