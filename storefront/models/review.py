from typing import Optional
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from storefront.core.clock import utc_now

class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class Review(SQLModel, table=True):
    # One review per (product, user)
    __table_args__ = (UniqueConstraint("product_id", "user_id", name="uq_review_product_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    product_id: int = Field(foreign_key="product.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # Review Content
    rating: int = Field(ge=1, le=5)  # 1-5 stars
    comment: str = Field(min_length=10, max_length=1000)
    title: Optional[str] = Field(default=None, max_length=100)

    # Moderation
    status: ReviewStatus = Field(default=ReviewStatus.PENDING, index=True)
    admin_notes: Optional[str] = Field(default=None, max_length=500)
    reviewed_by: Optional[int] = Field(default=None, foreign_key="user.id")  # Admin who moderated
    reviewed_at: Optional[datetime] = None

    helpful: int = Field(default=0)
    verified: bool = Field(default=False)  # Purchase check against orders is not enforced

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
