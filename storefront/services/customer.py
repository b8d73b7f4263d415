from typing import List, Optional, Dict, Any, Tuple
from sqlalchemy import desc, or_
from sqlmodel import Session, select, func

from storefront.models.order import Order, OrderStatus
from storefront.models.user import User, UserRole

# Orders that never turned into revenue
UNBILLED_STATUSES = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

class CustomerService:
    def __init__(self, session: Session):
        self.session = session

    def to_dict(self, user: User) -> Dict[str, Any]:
        data = user.model_dump(mode="json")
        data["order_count"] = self.session.exec(
            select(func.count(Order.id)).where(Order.user_id == user.id)
        ).one()
        spent = self.session.exec(
            select(func.sum(Order.total_price)).where(
                Order.user_id == user.id, Order.status.not_in(UNBILLED_STATUSES)
            )
        ).one()
        data["total_spent"] = round(spent or 0, 2)
        return data

    def list_customers(
        self, page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        query = select(User).where(User.role == UserRole.CUSTOMER)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            ))

        total = self.session.exec(query.with_only_columns(func.count(User.id))).one()
        users = self.session.exec(
            query.order_by(desc(User.created_at), desc(User.id)).offset((page - 1) * limit).limit(limit)
        ).all()
        return [self.to_dict(user) for user in users], total
