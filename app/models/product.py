# app/models/product.py
# Модель товара каталога. stock_quantity — общий изменяемый ресурс:
# его уменьшают заказы и возвращают отмены, поэтому строка версионируется.
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    image_url = Column(String, nullable=False, default="")
    price = Column(Numeric(18, 2), nullable=False)
    discount_price = Column(Numeric(18, 2), nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    # Токен оптимистичной блокировки, увеличивается при каждой записи строки
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

    cart_items = relationship("CartItem", back_populates="product")
    order_items = relationship("OrderItem", back_populates="product")

    __mapper_args__ = {"version_id_col": version}

    @property
    def effective_price(self):
        """Цена, по которой товар кладётся в корзину сейчас."""
        return self.discount_price if self.discount_price is not None else self.price
