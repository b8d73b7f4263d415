from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON
from storefront.core.clock import utc_now

class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    # Cleared when the product is deleted; the snapshot below stays
    product_id: Optional[int] = Field(default=None, foreign_key="product.id", index=True)

    # Snapshot at purchase time
    name: str
    image: Optional[str] = None
    color: str = Field(default="")
    size: str = Field(default="")
    quantity: int = Field(ge=1)
    price: float
    total_price: float

    order: Optional["Order"] = Relationship(back_populates="items")

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # e.g. ORD-250314-00012
    order_number: str = Field(unique=True, index=True)

    # Shipping: full_name, address, city, state, postal_code, country, phone
    shipping: Dict[str, Any] = Field(default={}, sa_column=Column(JSON))

    # Payment Info
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH_ON_DELIVERY)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    transaction_id: Optional[str] = None
    is_paid: bool = Field(default=False)
    paid_at: Optional[datetime] = None

    # Amounts
    items_price: float
    shipping_price: float
    tax_price: float = Field(default=0.0)
    total_price: float

    # Fulfilment
    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    is_delivered: bool = Field(default=False)
    delivered_at: Optional[datetime] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    items: List[OrderItem] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.id"},
    )
