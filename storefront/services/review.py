from typing import List, Optional, Dict, Any, Tuple
from decimal import Decimal, ROUND_HALF_UP
from fastapi import HTTPException
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, func

from storefront.core.clock import utc_now
from storefront.core.cache import cache, cache_keys
from storefront.core.config import settings
from storefront.core.errors import FieldValidationError
from storefront.core.logging import get_logger
from storefront.models.product import Product
from storefront.models.review import Review, ReviewStatus
from storefront.models.user import User
from storefront.services.order import has_delivered_purchase
from storefront.services.rating import RatingService, RatingSummary, refresh_product_rating

logger = get_logger(__name__)

DUPLICATE_REVIEW_MESSAGE = "You have already reviewed this product"

STATUS_MESSAGES = {
    ReviewStatus.APPROVED: "Review approved successfully",
    ReviewStatus.REJECTED: "Review rejected successfully",
    ReviewStatus.PENDING: "Review status reset to pending",
}

def is_transition_allowed(current: ReviewStatus, target: ReviewStatus, allow_reset_to_pending: bool) -> bool:
    """Moderation policy.

    Admins may approve or reject from any state, including re-deciding an
    earlier decision. Moving a decided review back to pending is governed by
    ``allow_reset_to_pending``.
    """
    if target == ReviewStatus.PENDING and current != ReviewStatus.PENDING:
        return allow_reset_to_pending
    return True

class ReviewService:
    def __init__(self, session: Session):
        self.session = session

    def to_dict(self, review: Review) -> Dict[str, Any]:
        data = review.model_dump(mode="json")
        user = self.session.get(User, review.user_id)
        product = self.session.get(Product, review.product_id)
        data["user"] = {"id": user.id, "display_name": user.display_name} if user else None
        data["product"] = {"id": product.id, "name": product.name, "slug": product.slug} if product else None
        if review.reviewed_by:
            moderator = self.session.get(User, review.reviewed_by)
            data["reviewed_by_name"] = moderator.display_name if moderator else None
        return data

    def get_review(self, review_id: int) -> Review:
        review = self.session.get(Review, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        return review

    def list_reviews(
        self,
        product_id: Optional[int] = None,
        status: Optional[str] = ReviewStatus.APPROVED.value,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Review], int]:
        query = select(Review)
        if product_id is not None:
            query = query.where(Review.product_id == product_id)
        if status and status != "all":
            query = query.where(Review.status == ReviewStatus(status))

        total = self.session.exec(query.with_only_columns(func.count(Review.id))).one()
        reviews = self.session.exec(
            query.order_by(desc(Review.created_at), desc(Review.id)).offset((page - 1) * limit).limit(limit)
        ).all()
        return reviews, total

    def product_stats(self, product_id: int) -> RatingSummary:
        """Live mean/count over approved reviews, read without touching the product."""
        return RatingService(self.session).approved_summary(product_id)

    def create_review(
        self,
        user: User,
        product_id: int,
        rating: float,
        comment: str,
        title: Optional[str] = None,
    ) -> Review:
        if not self.session.get(Product, product_id):
            raise HTTPException(status_code=404, detail="Product not found")

        existing = self.session.exec(
            select(Review).where(Review.product_id == product_id, Review.user_id == user.id)
        ).first()
        if existing:
            raise HTTPException(status_code=400, detail=DUPLICATE_REVIEW_MESSAGE)

        review = Review(
            product_id=product_id,
            user_id=user.id,
            rating=int(Decimal(str(rating)).quantize(Decimal(1), rounding=ROUND_HALF_UP)),
            comment=comment.strip(),
            title=(title or "").strip(),
            status=ReviewStatus.PENDING,
            verified=has_delivered_purchase(self.session, user.id, product_id),
        )
        self.session.add(review)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent request for the same (product, user) got there first
            self.session.rollback()
            raise HTTPException(status_code=400, detail=DUPLICATE_REVIEW_MESSAGE)
        self.session.refresh(review)
        cache.delete(cache_keys.stats())
        logger.info("review_created", review_id=review.id, product_id=product_id, user_id=user.id)

        if review.status == ReviewStatus.APPROVED:
            refresh_product_rating(self.session, product_id)
        return review

    def moderate_review(
        self,
        review_id: int,
        admin: User,
        status: ReviewStatus,
        admin_notes: Optional[str] = None,
    ) -> Review:
        review = self.get_review(review_id)
        previous = review.status
        if not is_transition_allowed(previous, status, settings.REVIEW_ALLOW_RESET_TO_PENDING):
            raise FieldValidationError(
                {"status": f"Cannot move a {previous.value} review back to pending"}
            )

        review.status = status
        review.reviewed_by = admin.id
        review.reviewed_at = utc_now()
        review.updated_at = review.reviewed_at
        if admin_notes:
            review.admin_notes = admin_notes.strip()
        self.session.add(review)
        self.session.commit()
        self.session.refresh(review)
        cache.delete(cache_keys.stats())
        logger.info(
            "review_moderated",
            review_id=review.id,
            product_id=review.product_id,
            admin_id=admin.id,
            previous=previous.value,
            status=status.value,
        )

        # Either the old or the new state may have counted towards the aggregate
        refresh_product_rating(self.session, review.product_id)
        self.session.refresh(review)
        return review

    def delete_review(self, review_id: int) -> None:
        review = self.get_review(review_id)
        product_id = review.product_id
        was_approved = review.status == ReviewStatus.APPROVED

        self.session.delete(review)
        self.session.commit()
        cache.delete(cache_keys.stats())
        logger.info("review_deleted", review_id=review_id, product_id=product_id, was_approved=was_approved)

        if was_approved:
            refresh_product_rating(self.session, product_id)
