# app/schemas/cart.py
# Схемы корзины и функции построения представлений из ORM-объектов.
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.cart import CartItem, ShoppingCart


class AddToCart(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, gt=0)


class UpdateCartItem(BaseModel):
    quantity: int = Field(gt=0)


class CartItemView(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_image_url: str
    price: Decimal
    quantity: int
    subtotal: Decimal


class CartView(BaseModel):
    id: int
    user_id: int
    items: list[CartItemView]
    total_amount: Decimal


def build_cart_item_view(item: CartItem) -> CartItemView:
    return CartItemView(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name,
        product_image_url=item.product.image_url,
        price=item.price,
        quantity=item.quantity,
        subtotal=item.subtotal,
    )


def build_cart_view(cart: ShoppingCart) -> CartView:
    items = [build_cart_item_view(item) for item in cart.items]
    return CartView(
        id=cart.id,
        user_id=cart.user_id,
        items=items,
        total_amount=sum((item.subtotal for item in items), Decimal("0.00")),
    )
