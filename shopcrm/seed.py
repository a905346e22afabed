"""Idempotent bootstrap data: an owner account, the default shipping rate and a
few categories. Run with ``python -m shopcrm.seed`` after migrations.
"""
import os
from decimal import Decimal

from sqlalchemy.orm import Session

from shopcrm.auth_local import hash_password
from shopcrm.core import get_logger, setup_logging
from shopcrm.domain.models import AdminUser, Category, ShippingRate
from shopcrm.domain.permissions import UserRole
from shopcrm.infrastructure.db import SessionLocal, init_models

logger = get_logger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "General", "category_type": "PHYSICAL", "sort_order": 0},
    {"name": "Downloads", "category_type": "DIGITAL", "sort_order": 10},
]

DEFAULT_SHIPPING_FEE = Decimal("500")
DEFAULT_FREE_SHIPPING_THRESHOLD = Decimal("5000")


def seed(db: Session, owner_email: str, owner_password: str) -> dict:
    """Insert whatever is missing and report what was created."""
    created = {"owner": False, "categories": 0, "default_shipping_rate": False}

    if not db.query(AdminUser).filter(AdminUser.email == owner_email).first():
        db.add(AdminUser(
            name="Owner",
            email=owner_email,
            role=UserRole.OWNER.value,
            password_hash=hash_password(owner_password),
        ))
        created["owner"] = True

    for category in DEFAULT_CATEGORIES:
        if not db.query(Category).filter(Category.name == category["name"]).first():
            db.add(Category(**category))
            created["categories"] += 1

    if not db.query(ShippingRate).filter(ShippingRate.category_id.is_(None)).first():
        db.add(ShippingRate(
            category_id=None,
            shipping_fee=DEFAULT_SHIPPING_FEE,
            free_shipping_threshold=DEFAULT_FREE_SHIPPING_THRESHOLD,
            is_active=True,
        ))
        created["default_shipping_rate"] = True

    db.commit()
    return created


def main():
    setup_logging(service_name="shopcrm-seed", level=os.getenv("LOG_LEVEL", "INFO"))
    init_models()
    with SessionLocal() as db:
        created = seed(
            db,
            owner_email=os.getenv("SEED_OWNER_EMAIL", "owner@example.com"),
            owner_password=os.getenv("SEED_OWNER_PASSWORD", "change-me-now"),
        )
    logger.info("Seed complete", extra={'extra_fields': created})


if __name__ == "__main__":
    main()
