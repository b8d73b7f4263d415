from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder


def success(data: Any = None, message: Optional[str] = None, pagination: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = {"success": True, "message": message, "data": jsonable_encoder(data)}
    if pagination is not None:
        body["pagination"] = pagination
    return body


def error(message: str, errors: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def paginate(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = (total + limit - 1) // limit
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
