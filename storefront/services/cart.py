from typing import Dict, Any
from fastapi import HTTPException
from sqlmodel import Session, select

from storefront.core.logging import get_logger
from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product, ProductStatus

logger = get_logger(__name__)

UNAVAILABLE_STATUSES = (ProductStatus.DRAFT, ProductStatus.OUT_OF_STOCK)

class CartService:
    def __init__(self, session: Session):
        self.session = session

    def _save(self, cart: Cart) -> Cart:
        cart.recalculate_totals()
        self.session.add(cart)
        self.session.commit()
        self.session.refresh(cart)
        return cart

    def get_or_create_cart(self, user_id: int) -> Cart:
        cart = self.session.exec(select(Cart).where(Cart.user_id == user_id)).first()
        if cart is None:
            cart = self._save(Cart(user_id=user_id))
        return cart

    def get_user_cart(self, user_id: int) -> Dict[str, Any]:
        """Cart with stale lines dropped and current stock/price per line."""
        cart = self.get_or_create_cart(user_id)

        stale = []
        for item in cart.items:
            product = self.session.get(Product, item.product_id)
            if not product or not product.active:
                stale.append(item)
        if stale:
            for item in stale:
                cart.items.remove(item)
            cart = self._save(cart)
            logger.info("cart_pruned", user_id=user_id, removed=len(stale))

        return self.to_dict(cart)

    def to_dict(self, cart: Cart) -> Dict[str, Any]:
        items = []
        for item in cart.items:
            product = self.session.get(Product, item.product_id)
            line = item.model_dump(mode="json", exclude={"cart_id"})
            if product:
                line["product"] = {
                    "id": product.id,
                    "name": product.name,
                    "slug": product.slug,
                    "image": product.image,
                    "status": product.status.value,
                }
                line["current_price"] = product.final_price
                line["in_stock"] = product.quantity >= item.quantity
                line["available_quantity"] = product.quantity
            items.append(line)

        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "items": items,
            "total_items": cart.total_items,
            "total_price": cart.total_price,
            "summary": {
                "subtotal": round(sum(line["total_price"] for line in items), 2),
                "total_items": sum(line["quantity"] for line in items),
            },
            "updated_at": cart.updated_at.isoformat(),
        }

    def add_to_cart(self, user_id: int, product_id: int, quantity: int = 1, color: str = "", size: str = "") -> Dict[str, Any]:
        product = self.session.get(Product, product_id)
        if not product or not product.active or product.status in UNAVAILABLE_STATUSES:
            raise HTTPException(status_code=404, detail="Product not found or unavailable")

        if quantity > product.quantity:
            raise HTTPException(status_code=400, detail=f"Only {product.quantity} items available in stock")

        cart = self.get_or_create_cart(user_id)
        price = product.final_price
        item = cart.find_item(product_id, color, size)
        new_quantity = item.quantity + quantity if item else quantity
        if new_quantity > product.quantity:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot add {quantity} items. Total would exceed available stock ({product.quantity})",
            )

        if item:
            item.set_quantity(new_quantity, price)
        else:
            item = CartItem(product_id=product_id, color=color or "", size=size or "", price=price, total_price=0)
            item.set_quantity(quantity, price)
            cart.items.append(item)

        cart = self._save(cart)
        logger.info("cart_item_added", user_id=user_id, product_id=product_id, quantity=new_quantity)
        return self.to_dict(cart)

    def update_cart_item(self, user_id: int, product_id: int, quantity: int, color: str = "", size: str = "") -> Dict[str, Any]:
        product = self.session.get(Product, product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        if product.status == ProductStatus.OUT_OF_STOCK or product.quantity < quantity:
            raise HTTPException(status_code=400, detail="Product is out of stock or has insufficient quantity")

        cart = self.session.exec(select(Cart).where(Cart.user_id == user_id)).first()
        if not cart:
            raise HTTPException(status_code=404, detail="Cart not found")

        item = cart.find_item(product_id, color, size)
        if not item:
            raise HTTPException(status_code=404, detail="Item not found in cart")

        item.set_quantity(quantity, product.final_price)
        return self.to_dict(self._save(cart))

    def remove_from_cart(self, user_id: int, product_id: int, color: str = "", size: str = "") -> Dict[str, Any]:
        cart = self.session.exec(select(Cart).where(Cart.user_id == user_id)).first()
        if not cart:
            raise HTTPException(status_code=404, detail="Cart not found")

        item = cart.find_item(product_id, color, size)
        if not item:
            raise HTTPException(status_code=404, detail="Item not found in cart")

        cart.items.remove(item)
        return self.to_dict(self._save(cart))

    def clear_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.get_or_create_cart(user_id)
        cart.items.clear()
        return self.to_dict(self._save(cart))
