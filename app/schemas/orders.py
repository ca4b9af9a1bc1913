# app/schemas/orders.py
# Схемы заказа. Представление заказа строится чистой функцией build_order_view
# из графа Order -> OrderItem/Product -> Payment и не зависит от ORM-моделей снаружи.
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.order import Order, OrderItem, OrderStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus


class ShippingAddress(BaseModel):
    street: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(default="", max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)


class OrderCreate(BaseModel):
    user_id: int = Field(gt=0)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    card_last_four_digits: str | None = Field(default=None, pattern=r"^\d{4}$")
    card_brand: str | None = Field(default=None, max_length=32)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemView(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_image_url: str
    quantity: int
    price: Decimal
    subtotal: Decimal


class PaymentView(BaseModel):
    id: int
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: str | None
    card_last_four_digits: str | None
    card_brand: str | None
    payment_date: datetime


class OrderView(BaseModel):
    id: int
    order_number: str
    user_id: int
    total_amount: Decimal
    status: OrderStatus
    order_date: datetime
    shipped_date: datetime | None
    delivered_date: datetime | None
    shipping_address: str
    items: list[OrderItemView]
    payment: PaymentView | None


def build_order_item_view(item: OrderItem) -> OrderItemView:
    return OrderItemView(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name,
        product_image_url=item.product.image_url,
        quantity=item.quantity,
        price=item.price,
        subtotal=item.subtotal,
    )


def build_payment_view(payment: Payment) -> PaymentView:
    return PaymentView(
        id=payment.id,
        amount=payment.amount,
        method=payment.method,
        status=payment.status,
        transaction_id=payment.transaction_id,
        card_last_four_digits=payment.card_last_four_digits,
        card_brand=payment.card_brand,
        payment_date=payment.payment_date,
    )


def build_order_view(order: Order) -> OrderView:
    return OrderView(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        total_amount=order.total_amount,
        status=order.status,
        order_date=order.order_date,
        shipped_date=order.shipped_date,
        delivered_date=order.delivered_date,
        shipping_address=order.shipping_address,
        items=[build_order_item_view(item) for item in order.items],
        payment=build_payment_view(order.payment) if order.payment is not None else None,
    )
