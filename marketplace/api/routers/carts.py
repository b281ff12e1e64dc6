# marketplace/api/routers/carts.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import CartItemIn, CartItemOut, CartLineOut
from marketplace.errors import ConflictError, NotFoundError
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=List[CartLineOut])
def get_cart(
    user_id: int = Query(..., gt=0, alias="userId"),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.get_cart(user_id)


@router.post("", response_model=CartItemOut, status_code=201)
def add_item(payload: CartItemIn, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.add_product(payload.user_id, payload.product_id, payload.quantity)
    except (NotFoundError, ConflictError) as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/item/{product_id}")
def remove_item(
    product_id: int,
    user_id: int = Query(..., gt=0, alias="userId"),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.remove_product(user_id, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": "Item removed successfully"}
