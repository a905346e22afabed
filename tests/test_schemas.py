from decimal import Decimal
from types import SimpleNamespace

from shopcrm.application.schemas import CourseRead, OrderItemRead
from shopcrm.domain.models import utcnow


def test_amounts_stay_decimal_in_python_and_are_numbers_in_json():
    item = OrderItemRead.model_validate(SimpleNamespace(
        id=1, product_id=2, product_name="Widget", price=Decimal("1000.50"),
        quantity=2, subtotal=Decimal("2001.00"), product=None,
    ))
    assert item.price == Decimal("1000.50")
    assert item.model_dump()["subtotal"] == Decimal("2001.00")
    data = item.model_dump(mode="json")
    assert data["price"] == 1000.5
    assert isinstance(data["subtotal"], float)


def test_read_models_build_from_orm_attributes():
    course = CourseRead.model_validate(SimpleNamespace(
        id=1, name="Python", description=None, price=Decimal("30000"), duration=None,
        is_active=True, enrollment_count=3, created_at=None,
    ))
    assert course.enrollment_count == 3
    assert course.model_dump(mode="json")["price"] == 30000


def test_utcnow_is_naive_utc():
    now = utcnow()
    assert now.tzinfo is None
