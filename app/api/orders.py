# app/api/orders.py
# Роуты заказов. Все требуют JWT.
from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from app.core import security
from app.schemas.orders import OrderCreate, OrderStatusUpdate, OrderView, build_order_view
from app.services import orders as order_service

router = APIRouter(dependencies=[Depends(security.get_current_user)])


@router.post("", response_model=OrderView, status_code=status.HTTP_201_CREATED)
def place_order(payload: OrderCreate, db: Session = Depends(security.get_db)):
    """Оформляет заказ из корзины пользователя и очищает корзину."""
    order = order_service.place_order(
        db,
        payload.user_id,
        payload.shipping_address,
        payload.payment_method,
        card_last_four_digits=payload.card_last_four_digits,
        card_brand=payload.card_brand,
    )
    return build_order_view(order)


@router.get("/user/{user_id}", response_model=list[OrderView])
def list_user_orders(user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    return [build_order_view(order) for order in order_service.list_user_orders(db, user_id)]


@router.get("/{order_id}", response_model=OrderView)
def get_order(order_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    return build_order_view(order_service.get_order(db, order_id))


@router.put("/{order_id}/status", status_code=status.HTTP_204_NO_CONTENT)
def update_order_status(
    payload: OrderStatusUpdate,
    order_id: int = Path(gt=0),
    db: Session = Depends(security.get_db),
):
    order_service.update_status(db, order_id, payload.status)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_order(order_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    """Отмена заказа: товар возвращается на склад, платёж помечается refunded."""
    order_service.cancel_order(db, order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
