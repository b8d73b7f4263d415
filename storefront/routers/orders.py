from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.models.order import OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.user import User
from storefront.routers.auth import get_admin_user, get_current_user
from storefront.services.order import OrderService

router = APIRouter()

class ShippingInfo(BaseModel):
    full_name: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=5, max_length=30)

class OrderLine(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, le=99)
    color: str = ""
    size: str = ""

class OrderCreate(BaseModel):
    shipping: ShippingInfo
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    # Without items the order is placed from the cart
    items: Optional[List[OrderLine]] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    keep_cart: bool = False

class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    is_paid: Optional[bool] = None
    payment_status: Optional[PaymentStatus] = None
    transaction_id: Optional[str] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("status", "is_paid", "payment_status")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("May not be null")
        return value

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

@router.get("")
def list_orders(
    status: Optional[OrderStatus] = None,
    is_paid: Optional[bool] = None,
    is_delivered: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    orders, total = service.list_orders(current_user, status, is_paid, is_delivered, page, limit)
    return responses.success(
        [service.to_dict(order) for order in orders],
        "Orders retrieved successfully",
        responses.paginate(page, limit, total),
    )

@router.post("", status_code=201)
def create_order(
    order_in: OrderCreate,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.create_order(
        current_user,
        shipping=order_in.shipping.model_dump(),
        payment_method=order_in.payment_method,
        items=[line.model_dump() for line in order_in.items] if order_in.items else None,
        notes=order_in.notes,
        keep_cart=order_in.keep_cart,
    )
    return responses.success(service.to_dict(order), "Order placed successfully")

@router.get("/{order_id}")
def read_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return responses.success(service.to_dict(service.get_order(order_id, current_user)), "Order retrieved successfully")

@router.put("/{order_id}")
def update_order(
    order_id: int,
    order_in: OrderUpdate,
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.update_order(order_id, order_in.model_dump(exclude_unset=True))
    return responses.success(service.to_dict(order), "Order updated successfully")

@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    admin: User = Depends(get_admin_user),
    service: OrderService = Depends(get_order_service),
):
    service.delete_order(order_id)
    return responses.success(None, "Order deleted successfully")
