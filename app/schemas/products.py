# app/schemas/products.py
# Схемы каталога. version — токен оптимистичной блокировки: клиент присылает
# ту версию, которую видел, иначе получает 409.
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(default=None, max_length=100)
    image_url: str = ""
    price: Decimal = Field(gt=0, max_digits=18, decimal_places=2)
    discount_price: Decimal | None = Field(default=None, gt=0, max_digits=18, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.discount_price is not None and self.discount_price > self.price:
            raise ValueError("discount_price must not exceed price")
        return self


class ProductUpdate(BaseModel):
    version: int = Field(ge=1)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(default=None, max_length=100)
    image_url: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=18, decimal_places=2)
    discount_price: Decimal | None = Field(default=None, gt=0, max_digits=18, decimal_places=2)
    stock_quantity: int | None = Field(default=None, ge=0)


class ProductView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    category: str | None
    image_url: str
    price: Decimal
    discount_price: Decimal | None
    stock_quantity: int
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductPage(BaseModel):
    items: list[ProductView]
    total: int
    skip: int
    limit: int
