from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.services.settings import SettingsService

router = APIRouter()

@router.get("")
def get_homepage_data(session: Session = Depends(get_session)):
    """Get homepage data including hero banners, featured products and categories"""
    return responses.success(SettingsService(session).homepage_data(), "Homepage data retrieved successfully")
