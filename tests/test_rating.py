"""Rating aggregate: recomputation from approved reviews and its triggers."""

import pytest
from fastapi import HTTPException
from sqlalchemy import update
from sqlmodel import Session

from conftest import load
from storefront.core.config import settings
from storefront.core.errors import FieldValidationError
from storefront.models import Product, Review, ReviewStatus
from storefront.services.rating import RatingService, RatingSummary, refresh_product_rating, round_half_up
from storefront.services.review import ReviewService, is_transition_allowed


def _aggregate(engine, product):
    stored = load(engine, Product, product.id)
    return stored.total_rating, stored.review_count


class TestRoundHalfUp:
    def test_rounds_half_away_from_even(self):
        assert round_half_up(4.25) == 4.3
        assert round_half_up(4.35) == 4.4

    def test_keeps_one_decimal(self):
        assert round_half_up(11 / 3) == 3.7
        assert round_half_up(4) == 4.0


class TestRecomputeAggregate:
    def test_zero_reviews_is_exactly_zero(self, session, engine, product):
        summary = RatingService(session).recompute_aggregate(product.id)

        assert summary == RatingSummary(0.0, 0)
        assert _aggregate(engine, product) == (0.0, 0)

    def test_only_approved_reviews_count(self, session, engine, product, add_review):
        add_review(product, 5)
        add_review(product, 4)
        add_review(product, 1, status=ReviewStatus.PENDING)
        add_review(product, 1, status=ReviewStatus.REJECTED)

        summary = RatingService(session).recompute_aggregate(product.id)

        assert summary == RatingSummary(4.5, 2)
        assert _aggregate(engine, product) == (4.5, 2)

    def test_mean_is_rounded_to_one_decimal(self, session, engine, product, add_review):
        for rating in (5, 4, 4):
            add_review(product, rating)

        RatingService(session).recompute_aggregate(product.id)

        assert _aggregate(engine, product) == (4.3, 3)

    def test_overwrites_a_stale_summary(self, session, engine, product, add_review):
        add_review(product, 2)
        with Session(engine) as other:
            other.exec(update(Product).where(Product.id == product.id).values(total_rating=4.9, review_count=40))
            other.commit()

        RatingService(session).recompute_aggregate(product.id)

        assert _aggregate(engine, product) == (2.0, 1)

    def test_is_idempotent(self, session, engine, product, add_review):
        add_review(product, 3)
        add_review(product, 4)
        service = RatingService(session)

        first = service.recompute_aggregate(product.id)
        first_stored = _aggregate(engine, product)
        second = service.recompute_aggregate(product.id)

        assert first == second
        assert _aggregate(engine, product) == first_stored == (3.5, 2)

    def test_bumps_rating_version(self, session, engine, product):
        RatingService(session).recompute_aggregate(product.id)
        RatingService(session).recompute_aggregate(product.id)

        assert load(engine, Product, product.id).rating_version == 2

    def test_missing_product_raises_not_found(self, session):
        with pytest.raises(HTTPException) as exc_info:
            RatingService(session).recompute_aggregate(9999)

        assert exc_info.value.status_code == 404

    def test_retries_when_a_concurrent_write_wins(self, session, engine, product, add_review, monkeypatch):
        add_review(product, 5)
        add_review(product, 3)
        original = RatingService.approved_summary
        calls = []

        def racing_summary(self, product_id):
            if not calls:
                # Another writer lands between our read and our write
                with Session(engine) as other:
                    other.exec(
                        update(Product)
                        .where(Product.id == product_id)
                        .values(rating_version=Product.rating_version + 1, total_rating=1.0, review_count=7)
                    )
                    other.commit()
            calls.append(product_id)
            return original(self, product_id)

        monkeypatch.setattr(RatingService, "approved_summary", racing_summary)

        summary = RatingService(session).recompute_aggregate(product.id)

        assert len(calls) == 2
        assert summary == RatingSummary(4.0, 2)
        stored = load(engine, Product, product.id)
        assert (stored.total_rating, stored.review_count, stored.rating_version) == (4.0, 2, 2)


class TestRefreshProductRating:
    def test_failure_is_swallowed(self, session):
        assert refresh_product_rating(session, 9999) is None

    def test_returns_summary_on_success(self, session, product, add_review):
        add_review(product, 4)

        assert refresh_product_rating(session, product.id) == RatingSummary(4.0, 1)


class TestReviewTriggers:
    def test_approve_reject_delete_scenario(self, session, engine, product, add_review, admin):
        five = add_review(product, 5, status=ReviewStatus.PENDING)
        four = add_review(product, 4, status=ReviewStatus.PENDING)
        three = add_review(product, 3, status=ReviewStatus.PENDING)
        service = ReviewService(session)

        for review in (five, four, three):
            service.moderate_review(review.id, admin, ReviewStatus.APPROVED)
        assert _aggregate(engine, product) == (4.0, 3)

        service.moderate_review(three.id, admin, ReviewStatus.REJECTED)
        assert _aggregate(engine, product) == (4.5, 2)

        service.delete_review(five.id)
        assert _aggregate(engine, product) == (4.0, 1)

    def test_rejected_then_pending_never_counts(self, session, engine, product, add_review, admin):
        add_review(product, 5)
        target = add_review(product, 1, status=ReviewStatus.PENDING)
        service = ReviewService(session)

        service.moderate_review(target.id, admin, ReviewStatus.REJECTED)
        assert _aggregate(engine, product) == (5.0, 1)

        service.moderate_review(target.id, admin, ReviewStatus.PENDING)
        assert _aggregate(engine, product) == (5.0, 1)
        assert load(engine, Review, target.id).status == ReviewStatus.PENDING

    def test_moderation_stamps_reviewer(self, session, engine, product, add_review, admin):
        review = add_review(product, 4, status=ReviewStatus.PENDING)

        ReviewService(session).moderate_review(review.id, admin, ReviewStatus.APPROVED, "  looks genuine ")

        stored = load(engine, Review, review.id)
        assert stored.reviewed_by == admin.id
        assert stored.reviewed_at is not None
        assert stored.admin_notes == "looks genuine"

    def test_deleting_unapproved_review_leaves_aggregate(self, session, engine, product, add_review, monkeypatch):
        add_review(product, 5)
        pending = add_review(product, 1, status=ReviewStatus.PENDING)
        RatingService(session).recompute_aggregate(product.id)

        calls = []
        monkeypatch.setattr(RatingService, "recompute_aggregate", lambda self, product_id: calls.append(product_id))
        ReviewService(session).delete_review(pending.id)

        assert calls == []
        assert _aggregate(engine, product) == (5.0, 1)

    def test_recompute_failure_does_not_fail_moderation(self, session, engine, product, add_review, admin, monkeypatch):
        review = add_review(product, 2, status=ReviewStatus.PENDING)

        def boom(self, product_id):
            raise RuntimeError("database went away")

        monkeypatch.setattr(RatingService, "recompute_aggregate", boom)

        moderated = ReviewService(session).moderate_review(review.id, admin, ReviewStatus.APPROVED)

        assert moderated.status == ReviewStatus.APPROVED
        # The summary stays stale until the next successful trigger
        assert _aggregate(engine, product) == (0.0, 0)


class TestModerationPolicy:
    @pytest.mark.parametrize("current", [ReviewStatus.APPROVED, ReviewStatus.REJECTED])
    def test_reset_to_pending_follows_flag(self, current):
        assert is_transition_allowed(current, ReviewStatus.PENDING, allow_reset_to_pending=True)
        assert not is_transition_allowed(current, ReviewStatus.PENDING, allow_reset_to_pending=False)

    def test_decisions_can_be_revised(self):
        assert is_transition_allowed(ReviewStatus.APPROVED, ReviewStatus.REJECTED, allow_reset_to_pending=False)
        assert is_transition_allowed(ReviewStatus.REJECTED, ReviewStatus.APPROVED, allow_reset_to_pending=False)

    def test_disabled_reset_is_refused(self, session, engine, product, add_review, admin, monkeypatch):
        monkeypatch.setattr(settings, "REVIEW_ALLOW_RESET_TO_PENDING", False)
        review = add_review(product, 3, status=ReviewStatus.REJECTED)

        with pytest.raises(FieldValidationError) as exc_info:
            ReviewService(session).moderate_review(review.id, admin, ReviewStatus.PENDING)

        assert exc_info.value.errors == {"status": "Cannot move a rejected review back to pending"}
        assert load(engine, Review, review.id).status == ReviewStatus.REJECTED
