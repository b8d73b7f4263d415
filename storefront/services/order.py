from typing import List, Optional, Dict, Any, Tuple
from collections import defaultdict
from fastapi import HTTPException
from sqlalchemy import desc
from sqlmodel import Session, select, func

from storefront.core.clock import utc_now
from storefront.core.cache import cache, cache_keys, invalidate_catalogue
from storefront.core.config import settings
from storefront.core.errors import FieldValidationError
from storefront.core.logging import get_logger
from storefront.models.cart import Cart
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.product import Product, ProductStatus
from storefront.models.user import User

logger = get_logger(__name__)

# No further status changes once an order lands here
FINAL_STATUSES = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

def is_status_change_allowed(current: OrderStatus, target: OrderStatus) -> bool:
    if current == target:
        return True
    if current in FINAL_STATUSES:
        return False
    # Goods that reached the customer come back through a refund
    if current == OrderStatus.DELIVERED and target != OrderStatus.REFUNDED:
        return False
    return True

def has_delivered_purchase(session: Session, user_id: int, product_id: int) -> bool:
    """True when the user has a delivered order containing the product."""
    return session.exec(
        select(OrderItem.id)
        .join(Order)
        .where(
            Order.user_id == user_id,
            Order.status == OrderStatus.DELIVERED,
            OrderItem.product_id == product_id,
        )
        .limit(1)
    ).first() is not None

class OrderService:
    def __init__(self, session: Session):
        self.session = session

    def _next_order_number(self) -> str:
        last_id = self.session.exec(select(func.max(Order.id))).one() or 0
        return f"ORD-{utc_now():%y%m%d}-{last_id + 1:05d}"

    def to_dict(self, order: Order) -> Dict[str, Any]:
        data = order.model_dump(mode="json")
        data["items"] = [item.model_dump(mode="json", exclude={"order_id"}) for item in order.items]
        user = self.session.get(User, order.user_id)
        data["user"] = {"id": user.id, "email": user.email, "display_name": user.display_name} if user else None
        return data

    def _build_lines(self, requested: List[Dict[str, Any]]) -> List[Tuple[Product, OrderItem]]:
        lines = []
        totals = defaultdict(int)
        for entry in requested:
            product = self.session.get(Product, entry["product_id"])
            if not product or not product.active or product.status in (ProductStatus.DRAFT, ProductStatus.OUT_OF_STOCK):
                raise HTTPException(status_code=400, detail=f"Product {entry['product_id']} is not available")

            # Stock covers every variant line of the same product
            totals[product.id] += entry["quantity"]
            if totals[product.id] > product.quantity:
                raise HTTPException(status_code=400, detail=f"Insufficient stock for {product.name}")

            # Price comes from the product, never from the request
            price = product.final_price
            lines.append((product, OrderItem(
                product_id=product.id,
                name=product.name,
                image=product.image,
                color=entry.get("color") or "",
                size=entry.get("size") or "",
                quantity=entry["quantity"],
                price=price,
                total_price=round(price * entry["quantity"], 2),
            )))
        return lines

    def create_order(
        self,
        user: User,
        shipping: Dict[str, Any],
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
        items: Optional[List[Dict[str, Any]]] = None,
        notes: Optional[str] = None,
        keep_cart: bool = False,
    ) -> Order:
        cart = self.session.exec(select(Cart).where(Cart.user_id == user.id)).first()
        if not items:
            if not cart or not cart.items:
                raise HTTPException(status_code=400, detail="Cart is empty")
            items = [
                {"product_id": item.product_id, "quantity": item.quantity, "color": item.color, "size": item.size}
                for item in cart.items
            ]

        lines = self._build_lines(items)
        items_price = round(sum(item.total_price for _, item in lines), 2)
        shipping_price = settings.ORDER_SHIPPING_PRICE
        tax_price = round(items_price * settings.ORDER_TAX_RATE, 2)

        order = Order(
            user_id=user.id,
            order_number=self._next_order_number(),
            shipping=shipping,
            payment_method=payment_method,
            items_price=items_price,
            shipping_price=shipping_price,
            tax_price=tax_price,
            total_price=round(items_price + shipping_price + tax_price, 2),
            notes=notes,
        )
        order.items = [item for _, item in lines]
        self.session.add(order)

        for product, item in lines:
            product.quantity -= item.quantity
            product.sold += item.quantity
            product.refresh_status()
            product.updated_at = utc_now()
            self.session.add(product)

        if cart and not keep_cart:
            cart.items.clear()
            cart.recalculate_totals()
            self.session.add(cart)

        self.session.commit()
        self.session.refresh(order)
        # Stock and status changed on every ordered product
        invalidate_catalogue()
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            user_id=user.id,
            total_price=order.total_price,
            lines=len(lines),
        )
        return order

    def list_orders(
        self,
        user: User,
        status: Optional[OrderStatus] = None,
        is_paid: Optional[bool] = None,
        is_delivered: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        """Admins see every order, everyone else only their own."""
        query = select(Order)
        if not user.is_admin:
            query = query.where(Order.user_id == user.id)
        if status is not None:
            query = query.where(Order.status == status)
        if is_paid is not None:
            query = query.where(Order.is_paid == is_paid)
        if is_delivered is not None:
            query = query.where(Order.is_delivered == is_delivered)

        total = self.session.exec(query.with_only_columns(func.count(Order.id))).one()
        orders = self.session.exec(
            query.order_by(desc(Order.created_at), desc(Order.id)).offset((page - 1) * limit).limit(limit)
        ).all()
        return orders, total

    def get_order(self, order_id: int, user: User) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        if not user.is_admin and order.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to view this order")
        return order

    def update_order(self, order_id: int, changes: Dict[str, Any]) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")

        now = utc_now()
        status = changes.pop("status", None)
        if status is not None and status != order.status:
            if not is_status_change_allowed(order.status, status):
                raise FieldValidationError(
                    {"status": f"Cannot move a {order.status.value} order to {status.value}"}
                )
            previous = order.status
            order.status = status
            if status == OrderStatus.DELIVERED:
                order.is_delivered = True
                order.delivered_at = now
            logger.info("order_status_changed", order_id=order.id, previous=previous.value, status=status.value)

        if changes.get("is_paid") and not order.is_paid:
            order.paid_at = now
            changes.setdefault("payment_status", PaymentStatus.PAID)

        for field, value in changes.items():
            setattr(order, field, value)
        order.updated_at = now

        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        cache.delete(cache_keys.stats())
        return order

    def delete_order(self, order_id: int) -> None:
        order = self.session.get(Order, order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        if order.status != OrderStatus.PENDING:
            raise HTTPException(status_code=400, detail="Only pending orders can be deleted")

        self.session.delete(order)
        self.session.commit()
        cache.delete(cache_keys.stats())
        logger.info("order_deleted", order_id=order_id)
