"""Pytest fixtures for shop API tests."""

import os

# Настройки читаются при импорте app.*, поэтому окружение задаём до импортов
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.core import security
from app.db.base import Base
from app.db.session import create_db_engine
from app.models.cart import ShoppingCart
from app.models.product import Product
from app.models.user import User
from app.schemas.orders import ShippingAddress


@pytest.fixture
def engine(tmp_path):
    """Отдельная файловая SQLite-база на каждый тест."""
    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    Base.metadata.create_all(bind=db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def other_session(session_factory):
    """Вторая сессия, как у параллельного запроса: прочитанное не сбрасывается после commit."""
    session = session_factory(expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient, у которого get_db отдаёт сессии тестовой базы."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[security.get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Создаёт активного пользователя (по умолчанию с пустой корзиной)."""
    counter = {"n": 0}

    def _make(email: str | None = None, with_cart: bool = True) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@shop.io",
            hashed_password="not-a-real-hash",
            first_name="Test",
            last_name=f"User{counter['n']}",
            phone_number="",
            is_active=True,
        )
        db.add(user)
        db.flush()
        if with_cart:
            db.add(ShoppingCart(user_id=user.id))
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(
        name: str = "Widget",
        price: str = "10.00",
        stock: int = 10,
        discount_price: str | None = None,
        category: str | None = None,
    ) -> Product:
        product = Product(
            name=name,
            price=Decimal(price),
            discount_price=Decimal(discount_price) if discount_price is not None else None,
            stock_quantity=stock,
            category=category,
            image_url=f"https://cdn.shop.io/{name.lower()}.png",
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def shipping():
    return ShippingAddress(
        street="1 Main St",
        city="Springfield",
        state="IL",
        zip_code="62701",
        country="US",
    )


def register_and_login(client: TestClient, email: str = "alice@shop.io", password: str = "s3cret-pass") -> tuple[int, dict]:
    """Регистрирует пользователя через API и возвращает (user_id, заголовки с токеном)."""
    response = client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": password,
            "first_name": "Alice",
            "last_name": "Smith",
        },
    )
    assert response.status_code == 201, response.text
    user_id = response.json()["id"]

    response = client.post("/api/auth/token", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return user_id, {"Authorization": f"Bearer {token}"}
