# app/services/cart.py
# Изменение корзины: добавление, смена количества, удаление строки, очистка.
# Перед каждой записью количество сверяется с текущим остатком товара.

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.errors import (
    ConcurrencyConflictError,
    InsufficientStockError,
    NotFoundError,
    require_positive,
)
from app.db.session import transaction, violates_constraint
from app.models.cart import CartItem, ShoppingCart
from app.models.product import Product
from app.models.user import User

logger = logging.getLogger(__name__)

# Имена уникальных ограничений корзины (Postgres) и их текст в ошибках SQLite
CART_UNIQUE_CONSTRAINTS = (
    "uq_shopping_carts_user_id",
    "shopping_carts.user_id",
    "uq_cart_items_cart_product",
    "cart_items.cart_id, cart_items.product_id",
)


def _check_stock(product: Product, quantity: int) -> None:
    if product.stock_quantity < quantity:
        raise InsufficientStockError(product.id, product.name, product.stock_quantity, quantity)


def _cart_query(db: Session):
    return db.query(ShoppingCart).options(
        selectinload(ShoppingCart.items).joinedload(CartItem.product)
    )


def get_cart(db: Session, user_id: int) -> ShoppingCart:
    require_positive(user_id, "user ID")
    cart = _cart_query(db).filter(ShoppingCart.user_id == user_id).first()
    if cart is None:
        logger.warning(f"Cart not found for user {user_id}")
        raise NotFoundError("Cart for user", user_id)
    return cart


def _get_or_create_cart(db: Session, user_id: int) -> ShoppingCart:
    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if user is None:
        logger.warning(f"User {user_id} not found or inactive")
        raise NotFoundError("User", user_id)
    cart = _cart_query(db).filter(ShoppingCart.user_id == user_id).first()
    if cart is None:
        cart = ShoppingCart(user_id=user_id, created_at=datetime.utcnow())
        db.add(cart)
        db.flush()
        logger.info(f"Created cart {cart.id} for user {user_id}")
    return cart


def add_item(db: Session, user_id: int, product_id: int, quantity: int) -> CartItem:
    """
    Кладёт товар в корзину. Если строка с этим товаром уже есть, количество
    суммируется, а цена пересняется по текущей цене товара.
    """
    require_positive(user_id, "user ID")
    require_positive(product_id, "product ID")
    require_positive(quantity, "quantity")

    try:
        with transaction(db):
            cart = _get_or_create_cart(db, user_id)
            product = db.query(Product).filter(Product.id == product_id, Product.is_active.is_(True)).first()
            if product is None:
                logger.warning(f"Product {product_id} not found or inactive")
                raise NotFoundError("Product", product_id)

            item = next((line for line in cart.items if line.product_id == product_id), None)
            new_quantity = quantity + (item.quantity if item is not None else 0)
            _check_stock(product, new_quantity)

            if item is not None:
                item.quantity = new_quantity
                item.price = product.effective_price
                logger.info(f"Updated quantity for product {product_id} in cart {cart.id}")
            else:
                item = CartItem(
                    product_id=product_id,
                    quantity=quantity,
                    price=product.effective_price,
                    added_at=datetime.utcnow(),
                )
                cart.items.append(item)
                logger.info(f"Added product {product_id} to cart {cart.id}")
            cart.touch()
    except IntegrityError as exc:
        if not violates_constraint(exc, *CART_UNIQUE_CONSTRAINTS):
            raise
        # Корзину или ту же строку успел вставить параллельный запрос
        logger.warning(f"Concurrent cart write for user {user_id}, product {product_id}")
        raise ConcurrencyConflictError("Cart for user", user_id) from None
    return item


def _get_item(db: Session, item_id: int) -> CartItem:
    item = (
        db.query(CartItem)
        .options(joinedload(CartItem.product), joinedload(CartItem.cart))
        .filter(CartItem.id == item_id)
        .first()
    )
    if item is None:
        logger.warning(f"Cart item {item_id} not found")
        raise NotFoundError("Cart item", item_id)
    return item


def update_quantity(db: Session, item_id: int, quantity: int) -> None:
    require_positive(item_id, "cart item ID")
    require_positive(quantity, "quantity")
    with transaction(db):
        item = _get_item(db, item_id)
        if not item.product.is_active:
            raise NotFoundError("Product", item.product_id)
        _check_stock(item.product, quantity)
        item.quantity = quantity
        item.cart.touch()
    logger.info(f"Updated cart item {item_id} quantity to {quantity}")


def remove_item(db: Session, item_id: int) -> None:
    require_positive(item_id, "cart item ID")
    with transaction(db):
        item = _get_item(db, item_id)
        cart = item.cart
        cart.items.remove(item)
        cart.touch()
    logger.info(f"Removed cart item {item_id} from cart")


def clear_cart(db: Session, user_id: int) -> None:
    require_positive(user_id, "user ID")
    with transaction(db):
        cart = get_cart(db, user_id)
        cart.items.clear()
        cart.touch()
    logger.info(f"Cleared cart for user {user_id}")
