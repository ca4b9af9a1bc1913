# app/models/user.py
# Модель покупателя: email, hashed_password, имя, телефон, флаг активности.
# Удаление мягкое (is_active = False), email уникален среди активных.
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone_number = Column(String(32), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

    cart = relationship("ShoppingCart", back_populates="user", uselist=False)
    orders = relationship("Order", back_populates="user")
