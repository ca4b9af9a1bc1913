# app/services/products.py
# Каталог: создание, чтение, постраничный список, обновление по версии, мягкое удаление.

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.errors import ConcurrencyConflictError, NotFoundError, ValidationError, require_positive
from app.db.session import transaction
from app.models.cart import CartItem
from app.models.product import Product
from app.schemas.products import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

# Поля, которые можно явно сбросить в null при обновлении
NULLABLE_FIELDS = frozenset({"description", "category", "discount_price"})


def get_product(db: Session, product_id: int) -> Product:
    require_positive(product_id, "product ID")
    product = db.query(Product).filter(Product.id == product_id, Product.is_active.is_(True)).first()
    if product is None:
        logger.warning(f"Product {product_id} not found or inactive")
        raise NotFoundError("Product", product_id)
    return product


def list_products(
    db: Session,
    skip: int = 0,
    limit: int | None = None,
    category: str | None = None,
) -> tuple[list[Product], int]:
    """Активные товары страницей; возвращает (товары, общее количество)."""
    if skip < 0:
        raise ValidationError("skip must not be negative")
    limit = limit or settings.DEFAULT_PAGE_SIZE
    if not 0 < limit <= settings.MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")

    query = db.query(Product).filter(Product.is_active.is_(True))
    if category:
        query = query.filter(Product.category == category)
    total = query.with_entities(func.count(Product.id)).scalar()
    products = query.order_by(Product.id).offset(skip).limit(limit).all()
    return products, total


def create_product(db: Session, data: ProductCreate) -> Product:
    with transaction(db):
        product = Product(**data.model_dump(), created_at=datetime.utcnow())
        db.add(product)
    logger.info(f"Product {product.id} created: {product.name}")
    return product


def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product:
    """
    Обновляет товар, если клиент видел актуальную версию строки.
    Устаревшая версия (в том числе после списания остатка заказом) — ConcurrencyConflictError.
    """
    with transaction(db):
        product = get_product(db, product_id)
        if product.version != data.version:
            logger.warning(
                f"Product {product_id} update rejected: version {data.version}, current {product.version}"
            )
            raise ConcurrencyConflictError("Product", product_id)

        for field, value in data.model_dump(exclude_unset=True, exclude={"version"}).items():
            if value is None and field not in NULLABLE_FIELDS:
                continue
            setattr(product, field, value)
        if product.discount_price is not None and product.discount_price > product.price:
            raise ValidationError("discount_price must not exceed price")
        product.updated_at = datetime.utcnow()

        try:
            db.flush()
        except StaleDataError:
            raise ConcurrencyConflictError("Product", product_id) from None
    logger.info(f"Product {product_id} updated")
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Мягкое удаление: товар скрывается из каталога и убирается из всех корзин."""
    with transaction(db):
        product = get_product(db, product_id)
        product.is_active = False
        product.updated_at = datetime.utcnow()
        removed = (
            db.query(CartItem)
            .filter(CartItem.product_id == product_id)
            .delete(synchronize_session="fetch")
        )
    logger.info(f"Product {product_id} soft deleted, removed from {removed} carts")
