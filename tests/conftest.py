import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopcrm.api.deps import get_audit_writer
from shopcrm.auth_local import create_access_token, hash_password
from shopcrm.domain.models import AdminUser, Base, CartItem, Category, Customer, Product, ShippingRate
from shopcrm.infrastructure.audit import AuditLogWriter
from shopcrm.infrastructure.db import get_db
from shopcrm.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_writer] = lambda: AuditLogWriter(session_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id: int, user_type: str = "customer", role: str = None) -> dict:
    token = create_access_token(str(user_id), user_type, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_customer(db):
    def factory(name="Hanako Yamada", email=None, password="secret-pass", is_archived=False):
        customer = Customer(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            password_hash=hash_password(password),
            is_archived=is_archived,
        )
        db.add(customer)
        db.commit()
        return customer
    return factory


@pytest.fixture
def make_admin(db):
    def factory(role="OWNER", email=None, password="admin-pass"):
        admin = AdminUser(
            name=f"{role.title()} User",
            email=email or f"{role.lower()}@example.com",
            role=role,
            password_hash=hash_password(password),
        )
        db.add(admin)
        db.commit()
        return admin
    return factory


@pytest.fixture
def make_category(db):
    def factory(name="Goods", category_type="PHYSICAL"):
        category = Category(name=name, category_type=category_type)
        db.add(category)
        db.commit()
        return category
    return factory


@pytest.fixture
def make_product(db):
    def factory(name="Widget", price="1000", stock=10, is_active=True, category=None):
        product = Product(
            name=name,
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
            category_id=category.id if category is not None else None,
        )
        db.add(product)
        db.commit()
        return product
    return factory


@pytest.fixture
def make_rate(db):
    def factory(fee="500", threshold=None, category=None, is_active=True):
        rate = ShippingRate(
            category_id=category.id if category is not None else None,
            shipping_fee=Decimal(fee),
            free_shipping_threshold=Decimal(threshold) if threshold is not None else None,
            is_active=is_active,
        )
        db.add(rate)
        db.commit()
        return rate
    return factory


@pytest.fixture
def fill_cart(db):
    def factory(customer, product, quantity):
        item = CartItem(customer_id=customer.id, product_id=product.id, quantity=quantity)
        db.add(item)
        db.commit()
        return item
    return factory


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer.id, "customer")


@pytest.fixture
def owner(make_admin):
    return make_admin("OWNER")


@pytest.fixture
def owner_headers(owner):
    return auth_headers(owner.id, "admin", "OWNER")


@pytest.fixture
def operator_headers(make_admin):
    operator = make_admin("OPERATOR")
    return auth_headers(operator.id, "admin", "OPERATOR")


@pytest.fixture
def auth():
    return auth_headers
