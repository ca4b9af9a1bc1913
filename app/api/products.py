# app/api/products.py
# Каталог товаров. Чтение открыто, изменение — только с JWT.
from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session

from app.core import security
from app.core.config import settings
from app.schemas.products import ProductCreate, ProductPage, ProductUpdate, ProductView
from app.services import products as product_service

router = APIRouter()


@router.get("", response_model=ProductPage)
def list_products(
    skip: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, gt=0),
    category: str | None = None,
    db: Session = Depends(security.get_db),
):
    products, total = product_service.list_products(db, skip=skip, limit=limit, category=category)
    return ProductPage(
        items=[ProductView.model_validate(p) for p in products],
        total=total,
        skip=skip,
        limit=limit or settings.DEFAULT_PAGE_SIZE,
    )


@router.get("/{product_id}", response_model=ProductView)
def get_product(product_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    return ProductView.model_validate(product_service.get_product(db, product_id))


@router.post(
    "",
    response_model=ProductView,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(security.get_current_user)],
)
def create_product(payload: ProductCreate, db: Session = Depends(security.get_db)):
    return ProductView.model_validate(product_service.create_product(db, payload))


@router.put("/{product_id}", response_model=ProductView, dependencies=[Depends(security.get_current_user)])
def update_product(payload: ProductUpdate, product_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    """Обновление товара; в теле обязательно поле version, которое видел клиент."""
    return ProductView.model_validate(product_service.update_product(db, product_id, payload))


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(security.get_current_user)],
)
def delete_product(product_id: int = Path(gt=0), db: Session = Depends(security.get_db)):
    product_service.delete_product(db, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
