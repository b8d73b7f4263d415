from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.models.user import User
from storefront.routers.auth import get_current_user
from storefront.services.cart import CartService

router = APIRouter()

class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1, le=99)
    color: Optional[str] = Field(default="", max_length=50)
    size: Optional[str] = Field(default="", max_length=20)

class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1, le=99)
    color: Optional[str] = ""
    size: Optional[str] = ""

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)

@router.get("")
def get_cart(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    """Get user's cart"""
    return responses.success(service.get_user_cart(current_user.id), "Cart retrieved successfully")

@router.post("")
def add_to_cart(
    cart_item: CartItemCreate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Add item to cart"""
    cart = service.add_to_cart(
        current_user.id, cart_item.product_id, cart_item.quantity, cart_item.color or "", cart_item.size or ""
    )
    return responses.success(cart, "Item added to cart successfully")

@router.put("/{product_id}")
def update_cart_item(
    product_id: int,
    cart_update: CartItemUpdate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Update cart item quantity"""
    cart = service.update_cart_item(
        current_user.id, product_id, cart_update.quantity, cart_update.color or "", cart_update.size or ""
    )
    return responses.success(cart, "Cart item updated successfully")

@router.delete("/{product_id}")
def remove_from_cart(
    product_id: int,
    color: str = "",
    size: str = "",
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Remove item from cart"""
    return responses.success(service.remove_from_cart(current_user.id, product_id, color, size), "Item removed from cart")

@router.delete("")
def clear_cart(
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Clear entire cart"""
    return responses.success(service.clear_cart(current_user.id), "Cart cleared successfully")
