# marketplace/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import OrderCreate, OrderCreated, OrderOut
from marketplace.errors import ConflictError, EmptyCartError, OrderCreationFailed
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("", response_model=OrderCreated, status_code=201)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
):
    """
    Creates an order from everything in the user's cart and empties the cart.
    """
    svc = get_service(db)
    try:
        return svc.finalize_order(payload.user_id)
    except EmptyCartError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except OrderCreationFailed as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[OrderOut])
def list_orders(
    user_id: int = Query(..., gt=0, alias="userId"),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.list_orders(user_id)
