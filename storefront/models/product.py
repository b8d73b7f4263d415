from typing import Optional, List
from enum import Enum
from sqlmodel import Field, SQLModel, Column
from pydantic import computed_field
from sqlalchemy import JSON
from datetime import datetime
from storefront.core.clock import utc_now

LOW_STOCK_THRESHOLD = 5

class ProductStatus(str, Enum):
    IN_STOCK = "in stock"
    LOW_STOCK = "low stock"
    OUT_OF_STOCK = "out of stock"
    DRAFT = "draft"

def determine_product_status(quantity: int, active: bool) -> ProductStatus:
    if not active:
        return ProductStatus.DRAFT
    if quantity <= 0:
        return ProductStatus.OUT_OF_STOCK
    if quantity <= LOW_STOCK_THRESHOLD:
        return ProductStatus.LOW_STOCK
    return ProductStatus.IN_STOCK

class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(index=True, max_length=100)
    slug: str = Field(index=True, unique=True)
    description: str
    category_id: int = Field(foreign_key="category.id", index=True)

    # Images
    image: Optional[str] = None
    images: List[str] = Field(default=[], sa_column=Column(JSON))

    # Variants
    color: List[str] = Field(default=[], sa_column=Column(JSON))
    size: List[str] = Field(default=[], sa_column=Column(JSON))

    # Pricing
    price: float = Field(ge=0)
    discount_price: Optional[float] = Field(default=None, ge=0)

    # Inventory
    quantity: int = Field(default=0, ge=0)
    sold: int = Field(default=0)
    status: ProductStatus = Field(default=ProductStatus.IN_STOCK)

    # Rating summary, derived from approved reviews only
    total_rating: float = Field(default=0.0)
    review_count: int = Field(default=0)
    rating_version: int = Field(default=0)

    # Metadata
    featured: bool = Field(default=False)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def final_price(self) -> float:
        return self.discount_price if self.discount_price else self.price

    @computed_field
    @property
    def discount_percentage(self) -> int:
        if self.discount_price and self.price > self.discount_price:
            return round(((self.price - self.discount_price) / self.price) * 100)
        return 0

    def refresh_status(self) -> None:
        self.status = determine_product_status(self.quantity, self.active)
