from typing import Optional, Literal
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from storefront.core import responses
from storefront.db.session import get_session
from storefront.models.review import ReviewStatus
from storefront.models.user import User
from storefront.routers.auth import get_admin_user, get_current_user, get_current_user_optional
from storefront.services.review import ReviewService, STATUS_MESSAGES

router = APIRouter()

class ReviewCreate(BaseModel):
    product_id: int
    rating: float = Field(ge=1, le=5)
    comment: str = Field(min_length=10, max_length=1000)
    title: Optional[str] = Field(default=None, max_length=100)

class ReviewModerate(BaseModel):
    status: ReviewStatus
    admin_notes: Optional[str] = Field(default=None, max_length=500)

def get_review_service(session: Session = Depends(get_session)) -> ReviewService:
    return ReviewService(session)

@router.get("")
def read_reviews(
    product_id: Optional[int] = None,
    status: Literal["pending", "approved", "rejected", "all"] = "approved",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    stats_only: bool = False,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: ReviewService = Depends(get_review_service),
):
    """Approved reviews are public; any other status filter is admin only."""
    if stats_only and product_id is not None:
        stats = service.product_stats(product_id)
        return responses.success({"review_count": stats.review_count, "average_rating": stats.average_rating})

    if status != ReviewStatus.APPROVED.value and not (current_user and current_user.is_admin):
        raise HTTPException(status_code=403, detail="Not authorized as an admin")

    reviews, total = service.list_reviews(product_id=product_id, status=status, page=page, limit=limit)
    return responses.success(
        {"reviews": [service.to_dict(review) for review in reviews]},
        "Reviews retrieved successfully",
        responses.paginate(page, limit, total),
    )

@router.post("", status_code=201)
def create_review(
    review_in: ReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    review = service.create_review(
        current_user,
        review_in.product_id,
        review_in.rating,
        review_in.comment,
        review_in.title,
    )
    return responses.success(
        service.to_dict(review),
        "Review submitted successfully! It will be reviewed by our team before being published.",
    )

@router.get("/{review_id}")
def read_review(
    review_id: int,
    admin: User = Depends(get_admin_user),
    service: ReviewService = Depends(get_review_service),
):
    return responses.success(service.to_dict(service.get_review(review_id)), "Review retrieved successfully")

@router.put("/{review_id}")
def moderate_review(
    review_id: int,
    review_in: ReviewModerate,
    admin: User = Depends(get_admin_user),
    service: ReviewService = Depends(get_review_service),
):
    review = service.moderate_review(review_id, admin, review_in.status, review_in.admin_notes)
    return responses.success(service.to_dict(review), STATUS_MESSAGES[review_in.status])

@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    admin: User = Depends(get_admin_user),
    service: ReviewService = Depends(get_review_service),
):
    service.delete_review(review_id)
    return responses.success(None, "Review deleted successfully")
