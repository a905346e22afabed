"""Singleton settings rows.

Each store has one read accessor, ``get()``, which creates the default row the
first time it is needed, and one write path, ``update()``. Routes receive
stores through FastAPI dependencies so a test can hand in a fixed one.
"""
from typing import Any, Generic, Type, TypeVar

from sqlalchemy.orm import Session

from shopcrm.core.logging_config import get_logger
from shopcrm.domain.models import EmailSettings, PaymentSettings, SystemSettings

logger = get_logger(__name__)

SettingsModel = TypeVar("SettingsModel", SystemSettings, EmailSettings, PaymentSettings)

MASK = "********"


class SettingsStore(Generic[SettingsModel]):
    model: Type[SettingsModel]
    defaults: dict[str, Any] = {}
    secret_fields: tuple[str, ...] = ()

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> SettingsModel:
        row = (
            self.db.query(self.model)
            .filter(self.model.is_active.is_(True))
            .order_by(self.model.id)
            .first()
        )
        if row is None:
            row = self.model(is_active=True, **self.defaults)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.info(f"Created default {self.model.__tablename__} row")
        return row

    def update(self, changes: dict[str, Any]) -> tuple[dict, SettingsModel]:
        """Apply non-null changes. Returns the previous values and the row."""
        row = self.get()
        previous = self.as_dict(row)
        for key, value in changes.items():
            if value is None:
                continue
            # a masked secret sent back unchanged keeps the stored one
            if key in self.secret_fields and value == MASK:
                continue
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return previous, row

    def as_dict(self, row: SettingsModel) -> dict:
        return {
            column.name: getattr(row, column.name)
            for column in self.model.__table__.columns
            if column.name not in ("id", "updated_at")
        }

    def masked_values(self, values: dict) -> dict:
        data = dict(values)
        for name in self.secret_fields:
            if data.get(name):
                data[name] = MASK
        return data

    def masked(self, row: SettingsModel) -> dict:
        return self.masked_values(self.as_dict(row))


class SystemSettingsStore(SettingsStore[SystemSettings]):
    model = SystemSettings
    defaults = {
        "system_name": "CRM System",
        "primary_color": "#3B82F6",
        "secondary_color": "#1F2937",
        "background_color": "#F8FAFC",
        "description": "Customer relationship management system",
    }


class EmailSettingsStore(SettingsStore[EmailSettings]):
    model = EmailSettings
    defaults = {
        "smtp_host": "smtp.gmail.com",
        "smtp_port": 587,
        "from_name": "CRM System",
    }
    secret_fields = ("smtp_pass",)


class PaymentSettingsStore(SettingsStore[PaymentSettings]):
    model = PaymentSettings
    defaults = {
        "currency": "jpy",
        "is_test_mode": True,
    }
    secret_fields = ("stripe_secret_key", "stripe_webhook_secret")
