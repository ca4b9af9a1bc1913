# app/api/cart.py
# Роуты корзины.
from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from app.core import security
from app.schemas.cart import AddToCart, CartItemView, CartView, UpdateCartItem, build_cart_item_view, build_cart_view
from app.services import cart as cart_service

router = APIRouter()


@router.get("/{user_id}", response_model=CartView)
def get_cart(user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    return build_cart_view(cart_service.get_cart(db, user_id))


@router.post("/{user_id}/items", response_model=CartItemView)
def add_item(payload: AddToCart, user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    item = cart_service.add_item(db, user_id, payload.product_id, payload.quantity)
    return build_cart_item_view(item)


@router.put("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_item(payload: UpdateCartItem, item_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    cart_service.update_quantity(db, item_id, payload.quantity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_item(item_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    cart_service.remove_item(db, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(user_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    cart_service.clear_cart(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
