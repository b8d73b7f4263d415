from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.models.user import User
from storefront.routers.auth import get_admin_user
from storefront.services.category import CategoryService

router = APIRouter()

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=32)
    slug: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = None
    active: bool = True

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=32)
    slug: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("name", "slug", "active")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("May not be null")
        return value

def get_category_service(session: Session = Depends(get_session)) -> CategoryService:
    return CategoryService(session)

@router.get("")
def read_categories(active: Optional[bool] = None, service: CategoryService = Depends(get_category_service)):
    return responses.success(service.list_categories(active), "Categories retrieved successfully")

@router.get("/{ident}")
def read_category(ident: str, service: CategoryService = Depends(get_category_service)):
    return responses.success(service.get_category(ident), "Category retrieved successfully")

@router.post("", status_code=201)
def create_category(
    category_in: CategoryCreate,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service),
):
    category = service.create_category(category_in.model_dump())
    return responses.success(category, "Category created successfully")

@router.put("/{ident}")
def update_category(
    ident: str,
    category_in: CategoryUpdate,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service),
):
    category = service.update_category(ident, category_in.model_dump(exclude_unset=True))
    return responses.success(category, "Category updated successfully")

@router.delete("/{ident}")
def delete_category(
    ident: str,
    admin: User = Depends(get_admin_user),
    service: CategoryService = Depends(get_category_service),
):
    service.delete_category(ident)
    return responses.success(None, "Category deleted successfully")
