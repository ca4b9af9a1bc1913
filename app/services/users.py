# app/services/users.py
# Регистрация, аутентификация и профиль пользователя.
# Пароль хранится только как bcrypt-хеш, сравнение — через passlib.

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core import security
from app.core.errors import AuthenticationError, InvalidStateError, NotFoundError, require_positive
from app.db.session import transaction
from app.models.cart import ShoppingCart
from app.models.user import User
from app.schemas.users import UserRegister, UserUpdate

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _active_user_query(db: Session):
    return db.query(User).filter(User.is_active.is_(True))


def register_user(db: Session, data: UserRegister) -> User:
    """Создаёт пользователя вместе с пустой корзиной."""
    email = _normalize_email(data.email)
    with transaction(db):
        if _active_user_query(db).filter(User.email == email).first() is not None:
            logger.warning(f"Registration attempt with existing email: {email}")
            raise InvalidStateError("Email is already registered")

        user = User(
            email=email,
            hashed_password=security.get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone_number=data.phone_number or "",
            is_active=True,
            created_at=datetime.utcnow(),
        )
        db.add(user)
        db.flush()
        db.add(ShoppingCart(user_id=user.id, created_at=datetime.utcnow()))
    logger.info(f"New user registered: {user.id} - {email}")
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = _active_user_query(db).filter(User.email == _normalize_email(email)).first()
    if user is None or not security.verify_password(password, user.hashed_password):
        logger.warning(f"Failed login for {email}")
        raise AuthenticationError()
    return user


def get_user(db: Session, user_id: int) -> User:
    require_positive(user_id, "user ID")
    user = _active_user_query(db).filter(User.id == user_id).first()
    if user is None:
        logger.warning(f"User with ID {user_id} not found")
        raise NotFoundError("User", user_id)
    return user


def update_user(db: Session, user_id: int, data: UserUpdate) -> User:
    with transaction(db):
        user = get_user(db, user_id)
        user.first_name = data.first_name
        user.last_name = data.last_name
        user.phone_number = data.phone_number or ""
        user.updated_at = datetime.utcnow()
    logger.info(f"Updated user {user_id}")
    return user


def deactivate_user(db: Session, user_id: int) -> None:
    """Мягкое удаление: пользователь помечается неактивным, заказы остаются."""
    with transaction(db):
        user = get_user(db, user_id)
        user.is_active = False
        user.updated_at = datetime.utcnow()
    logger.info(f"User {user_id} soft deleted (marked as inactive)")
