import re
from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from storefront.core.clock import utc_now

def make_slug(name: str) -> str:
    """Lowercase, collapse every run of non-alphanumerics to '-', strip edge dashes."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")

class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(unique=True, index=True, max_length=32)
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = None
    active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
