# app/services/orders.py
# Оформление заказа из корзины, смена статуса и отмена заказа.
# Каждая операция — одна транзакция: либо всё (заказ, позиции, списание со склада,
# платёж, очистка корзины), либо ничего.

import logging
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.config import settings
from app.core.errors import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    OrderNumberCollisionError,
    ValidationError,
    require_positive,
)
from app.db.session import transaction, violates_constraint
from app.models.cart import CartItem, ShoppingCart
from app.models.order import Order, OrderItem, OrderStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.product import Product
from app.models.user import User
from app.schemas.orders import ShippingAddress
from app.services.payments import FakePaymentProcessor

logger = logging.getLogger(__name__)

# Допустимые переходы статусов. Повторная установка текущего статуса — no-op.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.processing, OrderStatus.cancelled}),
    OrderStatus.processing: frozenset({OrderStatus.shipped, OrderStatus.cancelled}),
    OrderStatus.shipped: frozenset({OrderStatus.delivered}),
    OrderStatus.delivered: frozenset(),
    OrderStatus.cancelled: frozenset(),
    OrderStatus.refunded: frozenset(),
}


def generate_order_number(now: datetime | None = None) -> str:
    """ORD-YYYYMMDD-XXXXXXXX. Уникальность гарантирует индекс в БД, не генератор."""
    now = now or datetime.utcnow()
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def _order_query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product),
        joinedload(Order.payment),
    )


def _load_order(db: Session, order_id: int) -> Order:
    order = _order_query(db).filter(Order.id == order_id).first()
    if order is None:
        logger.warning(f"Order {order_id} not found")
        raise NotFoundError("Order", order_id)
    return order


def get_order(db: Session, order_id: int) -> Order:
    require_positive(order_id, "order ID")
    return _load_order(db, order_id)


def list_user_orders(db: Session, user_id: int) -> list[Order]:
    """Заказы пользователя, новые первыми."""
    require_positive(user_id, "user ID")
    orders = (
        _order_query(db)
        .filter(Order.user_id == user_id)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )
    logger.info(f"Retrieved {len(orders)} orders for user {user_id}")
    return orders


def _insert_order(db: Session, user_id: int, total: Decimal, shipping: ShippingAddress) -> Order:
    """Вставляет заказ под SAVEPOINT, перегенерируя номер при коллизии."""
    attempts = settings.ORDER_NUMBER_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        order = Order(
            user_id=user_id,
            order_number=generate_order_number(),
            total_amount=total,
            status=OrderStatus.pending,
            order_date=datetime.utcnow(),
            shipping_street=shipping.street,
            shipping_city=shipping.city,
            shipping_state=shipping.state,
            shipping_zip_code=shipping.zip_code,
            shipping_country=shipping.country,
        )
        try:
            with db.begin_nested():
                db.add(order)
                db.flush()
        except IntegrityError as exc:
            if not violates_constraint(exc, "uq_orders_order_number", "orders.order_number"):
                raise
            logger.warning(
                f"Order number {order.order_number} already taken ({attempt}/{attempts}), regenerating"
            )
            continue
        return order
    raise OrderNumberCollisionError(attempts)


def _decrement_stock(db: Session, product: Product, quantity: int) -> None:
    """Проверка и списание одним UPDATE, чтобы параллельный заказ не увёл остаток в минус."""
    result = db.execute(
        update(Product)
        .where(
            Product.id == product.id,
            Product.is_active.is_(True),
            Product.stock_quantity >= quantity,
        )
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            version=Product.version + 1,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        available = db.execute(
            select(Product.stock_quantity).where(Product.id == product.id)
        ).scalar_one()
        raise InsufficientStockError(product.id, product.name, available, quantity)


def _restore_stock(db: Session, product_id: int, quantity: int) -> None:
    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=Product.stock_quantity + quantity,
            version=Product.version + 1,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


def place_order(
    db: Session,
    user_id: int,
    shipping_address: ShippingAddress,
    payment_method: PaymentMethod,
    card_last_four_digits: str | None = None,
    card_brand: str | None = None,
    processor: FakePaymentProcessor | None = None,
) -> Order:
    """
    Оформляет заказ из корзины пользователя.

    Порядок проверок: пользователь активен -> корзина не пуста -> каждого товара
    хватает на складе. Затем в одной транзакции: заказ, позиции, списание остатков,
    платёж, очистка корзины. Любая ошибка откатывает всё целиком.

    Returns:
        Заказ, перечитанный из БД после commit (с позициями и платежом).
    """
    require_positive(user_id, "user ID")
    processor = processor or FakePaymentProcessor()

    with transaction(db):
        user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if user is None:
            logger.warning(f"User {user_id} not found or inactive")
            raise NotFoundError("User", user_id)

        cart = (
            db.query(ShoppingCart)
            .options(selectinload(ShoppingCart.items).joinedload(CartItem.product))
            .filter(ShoppingCart.user_id == user_id)
            .first()
        )
        if cart is None or not cart.items:
            logger.warning(f"Cart is empty for user {user_id}")
            raise InvalidStateError("Cart is empty. Cannot create order.")

        for item in cart.items:
            product = item.product
            if not product.is_active:
                raise NotFoundError("Product", product.id)
            if product.stock_quantity < item.quantity:
                raise InsufficientStockError(product.id, product.name, product.stock_quantity, item.quantity)

        total = sum((item.price * item.quantity for item in cart.items), Decimal("0.00"))
        order = _insert_order(db, user_id, total, shipping_address)

        for item in cart.items:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.price,
                    subtotal=item.price * item.quantity,
                )
            )
            # Повторная проверка остатка внутри транзакции
            _decrement_stock(db, item.product, item.quantity)

        charge = processor.charge(total, payment_method, card_last_four_digits)
        if charge.status != PaymentStatus.completed:
            raise InvalidStateError(f"Payment was not completed: {charge.status.value}")

        db.add(
            Payment(
                order_id=order.id,
                amount=total,
                method=payment_method,
                status=charge.status,
                transaction_id=charge.transaction_id,
                card_last_four_digits=card_last_four_digits,
                card_brand=card_brand,
                payment_date=datetime.utcnow(),
            )
        )

        cart.items.clear()
        cart.touch()
        order_id, order_number = order.id, order.order_number

    logger.info(f"Order {order_number} created for user {user_id}")
    return get_order(db, order_id)


def _check_transition(order: Order, current: OrderStatus, new_status: OrderStatus) -> None:
    if new_status == OrderStatus.cancelled:
        if current in (OrderStatus.shipped, OrderStatus.delivered):
            raise InvalidStateError("Cannot cancel order that has been shipped or delivered")
        if current in (OrderStatus.cancelled, OrderStatus.refunded):
            raise InvalidStateError(f"Order {order.order_number} is already {current.value}")
    elif new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Cannot change order status from {current.value} to {new_status.value}"
        )


def _set_status(db: Session, order: Order, new_status: OrderStatus, **values) -> None:
    """
    Условный UPDATE: статус меняется, только если в БД он всё ещё тот,
    что был прочитан. Параллельный запрос, успевший сменить статус первым,
    блокирует второй; тот получает 0 строк и перепроверяет переход
    по актуальному статусу.
    """
    expected = order.status
    result = db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == expected)
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    current = db.execute(select(Order.status).where(Order.id == order.id)).scalar_one()
    logger.warning(
        f"Order {order.id} changed concurrently: expected {expected.value}, found {current.value}"
    )
    if current == new_status and new_status != OrderStatus.cancelled:
        return
    _check_transition(order, current, new_status)
    raise ConcurrencyConflictError("Order", order.id)


def _cancel(db: Session, order: Order, processor: FakePaymentProcessor) -> None:
    _check_transition(order, order.status, OrderStatus.cancelled)
    # Сначала забираем заказ статусом, потом возвращаем остатки: второй отменяющий
    # запрос остановится на _set_status и склад не пополнится дважды.
    _set_status(db, order, OrderStatus.cancelled)

    for item in order.items:
        _restore_stock(db, item.product_id, item.quantity)

    if order.payment is not None:
        order.payment.status = processor.refund(order.payment.transaction_id, order.payment.amount)


def _apply_status(db: Session, order: Order, new_status: OrderStatus) -> None:
    if new_status == order.status:
        return
    _check_transition(order, order.status, new_status)

    if new_status == OrderStatus.cancelled:
        _cancel(db, order, FakePaymentProcessor())
        return

    values = {}
    if new_status == OrderStatus.shipped and order.shipped_date is None:
        values["shipped_date"] = datetime.utcnow()
    if new_status == OrderStatus.delivered and order.delivered_date is None:
        values["delivered_date"] = datetime.utcnow()
    _set_status(db, order, new_status, **values)


def cancel_order(db: Session, order_id: int, processor: FakePaymentProcessor | None = None) -> None:
    """Отменяет заказ: возвращает товар на склад, платёж помечается refunded."""
    require_positive(order_id, "order ID")
    processor = processor or FakePaymentProcessor()
    with transaction(db):
        _cancel(db, _load_order(db, order_id), processor)
    logger.info(f"Order {order_id} cancelled and stock restored")


def update_status(db: Session, order_id: int, new_status: OrderStatus) -> None:
    """
    Переводит заказ в новый статус по таблице ALLOWED_TRANSITIONS.
    Даты отгрузки и доставки выставляются один раз и не перезаписываются.
    """
    require_positive(order_id, "order ID")
    try:
        new_status = OrderStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown order status: {new_status}") from None
    with transaction(db):
        _apply_status(db, _load_order(db, order_id), new_status)

    logger.info(f"Order {order_id} status updated to {new_status.value}")
