"""Tests for the product catalogue service."""

from decimal import Decimal

import pytest

from app.core.errors import ConcurrencyConflictError, NotFoundError, ValidationError
from app.models.cart import CartItem
from app.models.payment import PaymentMethod
from app.schemas.products import ProductCreate, ProductUpdate
from app.services import cart as cart_service
from app.services import orders as order_service
from app.services import products as product_service


def test_create_product_starts_at_version_one(db):
    product = product_service.create_product(
        db, ProductCreate(name="Lamp", price=Decimal("30.00"), stock_quantity=4)
    )

    assert product.id is not None
    assert product.version == 1
    assert product.is_active is True


def test_list_products_paginates_active_only(db, make_product):
    for i in range(5):
        make_product(name=f"Item{i}", category="tools" if i % 2 else "garden")
    hidden = make_product(name="Hidden")
    product_service.delete_product(db, hidden.id)

    page, total = product_service.list_products(db, skip=1, limit=2)

    assert total == 5
    assert [p.name for p in page] == ["Item1", "Item2"]


def test_list_products_by_category(db, make_product):
    make_product(name="Hammer", category="tools")
    make_product(name="Rake", category="garden")

    page, total = product_service.list_products(db, category="tools")

    assert total == 1
    assert page[0].name == "Hammer"


def test_list_products_rejects_oversized_page(db):
    with pytest.raises(ValidationError):
        product_service.list_products(db, limit=10_000)


def test_update_with_current_version(db, make_product):
    product = make_product(price="10.00")

    updated = product_service.update_product(db, product.id, ProductUpdate(version=1, price=Decimal("12.00")))

    assert updated.price == Decimal("12.00")
    assert updated.version == 2


def test_update_with_stale_version_conflicts(db, make_product):
    product = make_product()
    product_service.update_product(db, product.id, ProductUpdate(version=1, name="Renamed"))

    with pytest.raises(ConcurrencyConflictError):
        product_service.update_product(db, product.id, ProductUpdate(version=1, name="Again"))

    assert product_service.get_product(db, product.id).name == "Renamed"


def test_order_placement_invalidates_seen_version(db, make_user, make_product, shipping):
    product = make_product(stock=5)
    user = make_user()
    cart_service.add_item(db, user.id, product.id, 1)
    order_service.place_order(db, user.id, shipping, PaymentMethod.credit_card)

    # Клиент редактирует остаток по версии, прочитанной до заказа
    with pytest.raises(ConcurrencyConflictError):
        product_service.update_product(db, product.id, ProductUpdate(version=1, stock_quantity=50))

    assert product_service.get_product(db, product.id).stock_quantity == 4


def test_update_rejects_discount_above_price(db, make_product):
    product = make_product(price="10.00")

    with pytest.raises(ValidationError):
        product_service.update_product(db, product.id, ProductUpdate(version=1, discount_price=Decimal("11.00")))


def test_soft_delete_hides_product_and_removes_cart_lines(db, make_user, make_product):
    product = make_product()
    user = make_user()
    cart_service.add_item(db, user.id, product.id, 1)

    product_service.delete_product(db, product.id)

    with pytest.raises(NotFoundError):
        product_service.get_product(db, product.id)
    assert db.query(CartItem).count() == 0


def test_delete_missing_product(db):
    with pytest.raises(NotFoundError):
        product_service.delete_product(db, 11)
