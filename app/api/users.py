# app/api/users.py
# Профиль пользователя. Все роуты требуют JWT.
from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from app.core import security
from app.schemas.users import UserUpdate, UserView
from app.services import users as user_service

router = APIRouter(dependencies=[Depends(security.get_current_user)])


@router.get("/{user_id}", response_model=UserView)
def get_user(user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    return UserView.model_validate(user_service.get_user(db, user_id))


@router.put("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_user(payload: UserUpdate, user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    user_service.update_user(db, user_id, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    """Мягкое удаление пользователя."""
    user_service.deactivate_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
