"""Product rating aggregate.

A product's ``total_rating`` / ``review_count`` are a cache of the mean and
count of its *approved* reviews. They are always recomputed in full from the
review table, never adjusted incrementally, so a recompute is idempotent and
repairs any earlier missed update.

The write is guarded by ``Product.rating_version``: two recomputes racing on
the same product cannot overwrite each other with an older snapshot, the loser
re-reads the approved set and tries again.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import update
from sqlmodel import Session, select, func

from storefront.core.cache import cache
from storefront.core.logging import get_logger
from storefront.models.product import Product
from storefront.models.review import Review, ReviewStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class RatingSummary:
    average_rating: float
    review_count: int


EMPTY_SUMMARY = RatingSummary(average_rating=0.0, review_count=0)


class RatingConflictError(Exception):
    """Raised when every attempt lost the version race."""


def round_half_up(value, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


class RatingService:
    MAX_ATTEMPTS = 3

    def __init__(self, session: Session):
        self.session = session

    def approved_summary(self, product_id: int) -> RatingSummary:
        average, count = self.session.exec(
            select(func.avg(Review.rating), func.count(Review.id)).where(
                Review.product_id == product_id,
                Review.status == ReviewStatus.APPROVED,
            )
        ).one()
        if not count:
            return EMPTY_SUMMARY
        return RatingSummary(average_rating=round_half_up(average), review_count=count)

    def recompute_aggregate(self, product_id: int) -> RatingSummary:
        """Overwrite the product's rating summary from its approved reviews.

        Raises 404 when the product does not exist and RatingConflictError when
        concurrent writers kept winning the version check.
        """
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            version = self.session.exec(
                select(Product.rating_version).where(Product.id == product_id)
            ).first()
            if version is None:
                raise HTTPException(status_code=404, detail="Product not found")

            summary = self.approved_summary(product_id)
            result = self.session.exec(
                update(Product)
                .where(Product.id == product_id, Product.rating_version == version)
                .values(
                    total_rating=summary.average_rating,
                    review_count=summary.review_count,
                    rating_version=version + 1,
                )
            )
            if result.rowcount == 1:
                self.session.commit()
                cache.invalidate_pattern(r"^(products?|homepage):")
                logger.info(
                    "rating_recomputed",
                    product_id=product_id,
                    average_rating=summary.average_rating,
                    review_count=summary.review_count,
                    attempt=attempt,
                )
                return summary

            self.session.rollback()
            logger.warning("rating_version_conflict", product_id=product_id, attempt=attempt)

        raise RatingConflictError(f"Could not update rating for product {product_id}")


def refresh_product_rating(session: Session, product_id: int) -> Optional[RatingSummary]:
    """Recompute after a review write has committed.

    The review operation that triggered this has already succeeded, so a
    failure here is logged and the stale summary is left for the next trigger.
    """
    try:
        return RatingService(session).recompute_aggregate(product_id)
    except Exception:
        session.rollback()
        logger.exception("rating_recompute_failed", product_id=product_id)
        return None
