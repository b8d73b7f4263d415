from typing import List, Optional, Literal
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.models.user import User
from storefront.routers.auth import get_admin_user
from storefront.services.product import ProductService

router = APIRouter()

SortOption = Literal["price_asc", "price_desc", "name_asc", "name_desc", "popular", "newest"]

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = None
    description: str = Field(min_length=10, max_length=2000)
    price: float = Field(ge=0)
    discount_price: Optional[float] = Field(default=None, ge=0)
    category_id: int
    quantity: int = Field(ge=0)
    image: Optional[str] = None
    images: List[str] = []
    color: List[str] = []
    size: List[str] = []
    featured: bool = False
    active: bool = True

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    price: Optional[float] = Field(default=None, ge=0)
    discount_price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = None
    images: Optional[List[str]] = None
    color: Optional[List[str]] = None
    size: Optional[List[str]] = None
    featured: Optional[bool] = None
    active: Optional[bool] = None

    @field_validator(
        "name", "slug", "description", "price", "category_id", "quantity",
        "images", "color", "size", "featured", "active",
    )
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("May not be null")
        return value

def get_product_service(session: Session = Depends(get_session)) -> ProductService:
    return ProductService(session)

@router.get("")
def read_products(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    featured: bool = False,
    category: Optional[str] = None,
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    sort: SortOption = "newest",
    service: ProductService = Depends(get_product_service),
):
    products, total = service.list_products(
        page=page, limit=limit, featured=featured, category=category, search=search, sort=sort
    )
    return responses.success(products, "Products retrieved successfully", responses.paginate(page, limit, total))

@router.get("/{ident}")
def read_product(ident: str, service: ProductService = Depends(get_product_service)):
    return responses.success(service.get_product(ident), "Product retrieved successfully")

@router.post("", status_code=201)
def create_product(
    product_in: ProductCreate,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service),
):
    product = service.create_product(product_in.model_dump())
    return responses.success(service.to_dict(product), "Product created successfully")

@router.put("/{ident}")
def update_product(
    ident: str,
    product_in: ProductUpdate,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service),
):
    product = service.update_product(ident, product_in.model_dump(exclude_unset=True))
    return responses.success(service.to_dict(product), "Product updated successfully")

@router.delete("/{ident}")
def delete_product(
    ident: str,
    admin: User = Depends(get_admin_user),
    service: ProductService = Depends(get_product_service),
):
    service.delete_product(ident)
    return responses.success(None, "Product deleted successfully")
