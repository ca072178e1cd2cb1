import os
import tempfile

# Settings are read at import time, so the environment has to be in place first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="storefront-uploads-")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models.category import Category
from models.product import Product, ProductImage
from models.users import User
from utils.storage import LocalFileStorage, get_storage
from utils.tokenJWT import create_access_token


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"), "/uploads")


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---- users and tokens ----

def _make_user(db, email, role="customer"):
    user = User(email=email, role=role, first_name="Test", last_name=role.title())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(db):
    return _make_user(db, "jane@example.com")


@pytest.fixture
def other_customer(db):
    return _make_user(db, "john@example.com")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.com", role="admin")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


# ---- catalog factories ----

@pytest.fixture
def category(db):
    category = Category(name="Shoes", description="Footwear")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def make_product(db, category):
    def factory(name="Sneaker", price="10.00", discount_price=None, stock_quantity=5,
                is_active=True, image_urls=("/uploads/products/a.jpg",)):
        product = Product(
            name=name,
            description=f"{name} description",
            price=Decimal(price),
            discount_price=Decimal(discount_price) if discount_price is not None else None,
            stock_quantity=stock_quantity,
            is_active=is_active,
            category_id=category.id,
        )
        for index, url in enumerate(image_urls):
            product.images.append(ProductImage(url=url, is_primary=index == 0))
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return factory


@pytest.fixture
def product(make_product):
    return make_product()


# ---- orders ----

def order_payload(items, payment_method="cod", **overrides):
    payload = {
        "payment_method": payment_method,
        "items": items,
        "email": "jane@example.com",
        "first_name": "Jane",
        "last_name": "Doe",
        "address": "1 Main Street",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
        "phone": "555-0100",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def place_order(client, customer_headers):
    def factory(items, payment_method="cod", headers=None, **overrides):
        response = client.post(
            "/orders",
            json=order_payload(items, payment_method, **overrides),
            headers=headers or customer_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return factory
