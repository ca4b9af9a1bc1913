# app/api/auth.py
# Роуты для регистрации и получения JWT токена.
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta

from app.core import security
from app.core.config import settings
from app.schemas.users import Token, UserRegister, UserView
from app.services import users as user_service

router = APIRouter()


@router.post("/register", response_model=UserView, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(security.get_db)):
    """
    Регистрация покупателя: email + password.
    Вместе с пользователем создаётся пустая корзина.
    """
    user = user_service.register_user(db, payload)
    return UserView.model_validate(user)


@router.post("/token", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(security.get_db)):
    """
    Логин: возвращает access_token (JWT).
    OAuth2PasswordRequestForm ожидает username и password — используем email как username.
    """
    user = user_service.authenticate_user(db, form_data.username, form_data.password)
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = security.create_access_token(subject=str(user.id), expires_delta=access_token_expires)
    return Token(access_token=token)
