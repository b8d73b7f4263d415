from typing import List, Dict, Any
from fastapi import APIRouter, Depends
from sqlalchemy import desc
from sqlmodel import Session, select, func
from pydantic import BaseModel

from storefront.core import responses
from storefront.core.cache import cache_keys, with_cache
from storefront.db.session import get_session
from storefront.models.category import Category
from storefront.models.order import Order, OrderStatus
from storefront.models.product import Product
from storefront.models.review import Review, ReviewStatus
from storefront.models.user import User
from storefront.routers.auth import get_admin_user
from storefront.services.customer import UNBILLED_STATUSES

router = APIRouter()

class DashboardStats(BaseModel):
    totalUsers: int
    totalProducts: int
    totalCategories: int
    totalReviews: int
    totalOrders: int
    totalRevenue: float
    ordersByStatus: Dict[str, int]
    orderStatusPercentages: Dict[str, int]
    reviewsByStatus: Dict[str, int]
    recentReviews: List[Dict[str, Any]]

def build_dashboard_stats(session: Session) -> Dict[str, Any]:
    total_users = session.exec(select(func.count(User.id)).where(User.is_active == True)).one()
    total_products = session.exec(select(func.count(Product.id)).where(Product.active == True)).one()
    total_categories = session.exec(select(func.count(Category.id))).one()

    counts = dict(session.exec(select(Review.status, func.count(Review.id)).group_by(Review.status)).all())
    reviews_by_status = {status.value: counts.get(status, 0) for status in ReviewStatus}

    order_counts = dict(session.exec(select(Order.status, func.count(Order.id)).group_by(Order.status)).all())
    orders_by_status = {status.value: order_counts.get(status, 0) for status in OrderStatus}
    total_orders = sum(orders_by_status.values())
    revenue = session.exec(
        select(func.sum(Order.total_price)).where(Order.status.not_in(UNBILLED_STATUSES))
    ).one()

    recent_reviews = session.exec(
        select(Review).order_by(desc(Review.created_at), desc(Review.id)).limit(5)
    ).all()

    recent_reviews_data = []
    for review in recent_reviews:
        user = session.get(User, review.user_id)
        product = session.get(Product, review.product_id)
        recent_reviews_data.append({
            "id": review.id,
            "user_name": user.display_name if user else "Unknown",
            "product_name": product.name if product else "Unknown",
            "rating": review.rating,
            "status": review.status.value,
            "comment": review.comment[:100] + "..." if len(review.comment) > 100 else review.comment,
            "created_at": review.created_at.isoformat()
        })

    return DashboardStats(
        totalUsers=total_users,
        totalProducts=total_products,
        totalCategories=total_categories,
        totalReviews=sum(reviews_by_status.values()),
        totalOrders=total_orders,
        totalRevenue=round(revenue or 0, 2),
        ordersByStatus=orders_by_status,
        orderStatusPercentages={
            status: round(count / total_orders * 100) if total_orders else 0
            for status, count in orders_by_status.items()
        },
        reviewsByStatus=reviews_by_status,
        recentReviews=recent_reviews_data,
    ).model_dump()

@router.get("/summary")
def get_dashboard_stats(
    admin: User = Depends(get_admin_user),
    session: Session = Depends(get_session)
):
    """Get dashboard statistics"""
    return responses.success(with_cache(cache_keys.stats(), lambda: build_dashboard_stats(session), ttl=60))
