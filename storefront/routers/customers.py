from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.models.user import User
from storefront.routers.auth import get_admin_user
from storefront.services.customer import CustomerService

router = APIRouter()

@router.get("")
def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    admin: User = Depends(get_admin_user),
    session: Session = Depends(get_session),
):
    customers, total = CustomerService(session).list_customers(page, limit, search)
    return responses.success(customers, "Customers retrieved successfully", responses.paginate(page, limit, total))
