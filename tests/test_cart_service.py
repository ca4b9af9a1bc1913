"""Tests for cart mutations."""

from decimal import Decimal

import pytest
from sqlalchemy import false

from app.core.errors import (
    ConcurrencyConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from app.models.cart import ShoppingCart
from app.services import cart as cart_service

from .conftest import register_and_login


class TestAddItem:
    def test_creates_line_with_snapshot_price(self, db, make_user, make_product):
        user = make_user()
        product = make_product(price="12.50", stock=5)

        item = cart_service.add_item(db, user.id, product.id, 2)

        assert item.quantity == 2
        assert item.price == Decimal("12.50")
        assert item.subtotal == Decimal("25.00")

    def test_uses_discount_price_when_set(self, db, make_user, make_product):
        user = make_user()
        product = make_product(price="20.00", discount_price="15.00")

        item = cart_service.add_item(db, user.id, product.id, 1)

        assert item.price == Decimal("15.00")

    def test_merges_into_existing_line_and_resnapshots_price(self, db, make_user, make_product):
        user = make_user()
        product = make_product(price="10.00", stock=10)
        cart_service.add_item(db, user.id, product.id, 2)
        db.refresh(product)
        product.price = Decimal("8.00")
        db.commit()

        item = cart_service.add_item(db, user.id, product.id, 3)

        cart = cart_service.get_cart(db, user.id)
        assert len(cart.items) == 1
        assert item.quantity == 5
        assert item.price == Decimal("8.00")

    def test_accumulated_quantity_checked_against_stock(self, db, make_user, make_product):
        user = make_user()
        product = make_product(stock=3)
        cart_service.add_item(db, user.id, product.id, 2)

        with pytest.raises(InsufficientStockError):
            cart_service.add_item(db, user.id, product.id, 2)

        assert cart_service.get_cart(db, user.id).items[0].quantity == 2

    def test_creates_cart_on_first_use(self, db, make_user, make_product):
        user = make_user(with_cart=False)
        product = make_product()

        cart_service.add_item(db, user.id, product.id, 1)

        assert db.query(ShoppingCart).filter(ShoppingCart.user_id == user.id).count() == 1

    def test_touches_cart_timestamp(self, db, make_user, make_product):
        user = make_user()
        product = make_product()

        cart_service.add_item(db, user.id, product.id, 1)

        assert cart_service.get_cart(db, user.id).updated_at is not None

    def test_inactive_product(self, db, make_user, make_product):
        user = make_user()
        product = make_product()
        db.refresh(product)
        product.is_active = False
        db.commit()

        with pytest.raises(NotFoundError):
            cart_service.add_item(db, user.id, product.id, 1)

    def test_unknown_user(self, db, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            cart_service.add_item(db, 321, product.id, 1)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(self, db, make_user, make_product, quantity):
        user = make_user()
        product = make_product()
        with pytest.raises(ValidationError):
            cart_service.add_item(db, user.id, product.id, quantity)


class TestLineOperations:
    def test_update_quantity(self, db, make_user, make_product):
        user = make_user()
        product = make_product(stock=5)
        item = cart_service.add_item(db, user.id, product.id, 1)

        cart_service.update_quantity(db, item.id, 4)

        assert cart_service.get_cart(db, user.id).items[0].quantity == 4

    def test_update_quantity_rechecks_stock(self, db, make_user, make_product):
        user = make_user()
        product = make_product(stock=5)
        item = cart_service.add_item(db, user.id, product.id, 1)

        with pytest.raises(InsufficientStockError) as exc_info:
            cart_service.update_quantity(db, item.id, 6)

        assert exc_info.value.available == 5
        assert cart_service.get_cart(db, user.id).items[0].quantity == 1

    def test_update_missing_item(self, db):
        with pytest.raises(NotFoundError):
            cart_service.update_quantity(db, 99, 1)

    def test_update_zero_quantity(self, db):
        with pytest.raises(ValidationError):
            cart_service.update_quantity(db, 1, 0)

    def test_remove_item(self, db, make_user, make_product):
        user = make_user()
        first = cart_service.add_item(db, user.id, make_product(name="First").id, 1)
        cart_service.add_item(db, user.id, make_product(name="Second").id, 1)

        cart_service.remove_item(db, first.id)

        cart = cart_service.get_cart(db, user.id)
        assert [line.product.name for line in cart.items] == ["Second"]

    def test_remove_missing_item(self, db):
        with pytest.raises(NotFoundError):
            cart_service.remove_item(db, 5)

    def test_clear_cart(self, db, make_user, make_product):
        user = make_user()
        cart_service.add_item(db, user.id, make_product(name="First").id, 1)
        cart_service.add_item(db, user.id, make_product(name="Second").id, 2)

        cart_service.clear_cart(db, user.id)

        assert cart_service.get_cart(db, user.id).items == []

    def test_get_cart_missing(self, db, make_user):
        user = make_user(with_cart=False)
        with pytest.raises(NotFoundError):
            cart_service.get_cart(db, user.id)


class TestConcurrentWrites:
    def test_cart_created_by_parallel_request_is_conflict(self, db, make_user, make_product, monkeypatch):
        user = make_user(with_cart=False)
        product = make_product(stock=5)
        cart_service.add_item(db, user.id, product.id, 1)

        # второй запрос искал корзину до того, как первый её закоммитил
        real_query = cart_service._cart_query
        monkeypatch.setattr(cart_service, "_cart_query", lambda session: real_query(session).filter(false()))
        with pytest.raises(ConcurrencyConflictError):
            cart_service.add_item(db, user.id, product.id, 1)
        monkeypatch.undo()

        assert db.query(ShoppingCart).filter(ShoppingCart.user_id == user.id).count() == 1
        assert cart_service.get_cart(db, user.id).items[0].quantity == 1

    def test_same_line_added_by_parallel_request_is_conflict(self, db, other_session, make_user, make_product):
        user = make_user()
        product = make_product(stock=5)
        user_id, product_id = user.id, product.id
        cart_service.get_cart(other_session, user_id)
        other_session.commit()

        cart_service.add_item(db, user_id, product_id, 1)
        with pytest.raises(ConcurrencyConflictError):
            cart_service.add_item(other_session, user_id, product_id, 2)

        assert [line.quantity for line in cart_service.get_cart(db, user_id).items] == [1]

    def test_conflict_maps_to_409(self, client, monkeypatch):
        user_id, headers = register_and_login(client)
        product = client.post("/api/products", json={"name": "Alpha", "price": "1.00", "stock_quantity": 3},
                              headers=headers).json()

        real_query = cart_service._cart_query
        monkeypatch.setattr(cart_service, "_cart_query", lambda session: real_query(session).filter(false()))
        response = client.post(f"/api/cart/{user_id}/items", json={"product_id": product["id"], "quantity": 1})

        assert response.status_code == 409
        assert response.json()["error_type"] == "ConcurrencyConflictError"
