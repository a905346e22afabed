from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from shopcrm.api.deps import CurrentUser, require_customer
from shopcrm.application.cart_service import CartService
from shopcrm.application.schemas import CartItemCreate, CartItemRead, CartItemUpdate, CartRead
from shopcrm.infrastructure.db import get_db

router = APIRouter(prefix="/cart", tags=["cart"])

@router.get("/", response_model=CartRead)
def get_cart(user: CurrentUser = Depends(require_customer), db: Session = Depends(get_db)):
    return CartService(db).summary(user.id)

@router.post("/", response_model=CartItemRead, status_code=201)
def add_to_cart(payload: CartItemCreate, user: CurrentUser = Depends(require_customer), db: Session = Depends(get_db)):
    return CartService(db).add(user.id, payload)

@router.put("/{item_id}", response_model=CartItemRead)
def update_cart_item(
    item_id: int,
    payload: CartItemUpdate,
    user: CurrentUser = Depends(require_customer),
    db: Session = Depends(get_db),
):
    return CartService(db).update(user.id, item_id, payload)

@router.delete("/{item_id}", status_code=204)
def remove_cart_item(item_id: int, user: CurrentUser = Depends(require_customer), db: Session = Depends(get_db)):
    CartService(db).remove(user.id, item_id)
    return None
