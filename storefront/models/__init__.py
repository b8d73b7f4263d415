# Import all models to register them with SQLModel
from storefront.models.user import User, UserRole
from storefront.models.category import Category
from storefront.models.product import Product, ProductStatus
from storefront.models.review import Review, ReviewStatus
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.setting import SiteSetting

__all__ = [
    "User",
    "UserRole",
    "Category",
    "Product",
    "ProductStatus",
    "Review",
    "ReviewStatus",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "SiteSetting",
]
