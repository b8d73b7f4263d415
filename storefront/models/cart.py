from typing import Optional, List
from datetime import datetime
from sqlmodel import Field, SQLModel, Relationship
from storefront.core.clock import utc_now

class Cart(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    # Derived from items, see recalculate_totals
    total_items: int = Field(default=0)
    total_price: float = Field(default=0.0)

    items: List["CartItem"] = Relationship(
        back_populates="cart",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "CartItem.id"},
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def find_item(self, product_id: int, color: str = "", size: str = "") -> Optional["CartItem"]:
        for item in self.items:
            if item.product_id == product_id and item.color == (color or "") and item.size == (size or ""):
                return item
        return None

    def recalculate_totals(self) -> None:
        """Must run before every save of the cart."""
        self.total_items = sum(item.quantity for item in self.items)
        self.total_price = round(sum(item.total_price for item in self.items), 2)
        self.updated_at = utc_now()

class CartItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    cart_id: int = Field(foreign_key="cart.id", index=True)
    product_id: int = Field(foreign_key="product.id")

    # Line identity is (product, color, size); absent variants are ""
    color: str = Field(default="")
    size: str = Field(default="")

    # Cart Details
    quantity: int = Field(default=1, ge=1, le=99)
    price: float  # unit price at the time it was added
    total_price: float

    cart: Optional[Cart] = Relationship(back_populates="items")

    def set_quantity(self, quantity: int, price: float) -> None:
        self.quantity = quantity
        self.price = price
        self.total_price = round(price * quantity, 2)
