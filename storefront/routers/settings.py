from typing import Dict, Any
from fastapi import APIRouter, Depends, Body
from sqlmodel import Session

from storefront.core import responses
from storefront.core.cache import cache
from storefront.db.session import get_session
from storefront.models.user import User
from storefront.routers.auth import get_admin_user
from storefront.services.settings import SettingsService

router = APIRouter()

def get_settings_service(session: Session = Depends(get_session)) -> SettingsService:
    return SettingsService(session)

# Cache routes are declared before /{name} so they are not captured by it
@router.get("/cache")
def cache_status(admin: User = Depends(get_admin_user)):
    return responses.success({"cache_size": cache.size()})

@router.post("/cache/clear")
def clear_cache(admin: User = Depends(get_admin_user)):
    cache.clear()
    return responses.success(None, "Cache cleared")

@router.get("/{name}")
def read_setting(name: str, service: SettingsService = Depends(get_settings_service)):
    return responses.success(service.get_value(name), "Settings retrieved successfully")

@router.put("/{name}")
def update_setting(
    name: str,
    changes: Dict[str, Any] = Body(...),
    admin: User = Depends(get_admin_user),
    service: SettingsService = Depends(get_settings_service),
):
    return responses.success(service.update_setting(name, changes), "Settings updated successfully")

@router.post("/{name}/reinitialize")
def reinitialize_setting(
    name: str,
    admin: User = Depends(get_admin_user),
    service: SettingsService = Depends(get_settings_service),
):
    return responses.success(service.reinitialize(name), "Settings reset to defaults")
