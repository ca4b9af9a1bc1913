# app/models/order.py
# Модели Order и OrderItem: суммы и цены фиксируются при создании заказа,
# дальше меняются только статус и даты отгрузки/доставки.
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base import Base
import enum


class OrderStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    refunded = "refunded"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    order_number = Column(String(50), nullable=False, unique=True)
    total_amount = Column(Numeric(18, 2), nullable=False)
    status = Column(Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.pending)
    order_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    shipped_date = Column(DateTime, nullable=True)
    delivered_date = Column(DateTime, nullable=True)

    # Адрес доставки
    shipping_street = Column(String, nullable=False, default="")
    shipping_city = Column(String, nullable=False, default="")
    shipping_state = Column(String, nullable=False, default="")
    shipping_zip_code = Column(String, nullable=False, default="")
    shipping_country = Column(String, nullable=False, default="")

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payment = relationship("Payment", back_populates="order", uselist=False, cascade="all, delete-orphan")

    @property
    def shipping_address(self) -> str:
        return (
            f"{self.shipping_street}, {self.shipping_city}, "
            f"{self.shipping_state} {self.shipping_zip_code}, {self.shipping_country}"
        )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(18, 2), nullable=False)  # цена на момент заказа
    subtotal = Column(Numeric(18, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")
