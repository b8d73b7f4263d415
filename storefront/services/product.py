from typing import List, Optional, Dict, Any, Tuple
from fastapi import HTTPException
from sqlalchemy import desc, or_, delete, update
from sqlmodel import Session, select, func

from storefront.core.clock import utc_now
from storefront.core.cache import cache_keys, invalidate_catalogue, with_cache
from storefront.core.logging import get_logger
from storefront.models.cart import Cart, CartItem
from storefront.models.order import OrderItem
from storefront.models.category import Category, make_slug
from storefront.models.product import Product, ProductStatus
from storefront.models.review import Review

logger = get_logger(__name__)

# Price ordering uses the discounted price when there is one
_final_price = func.coalesce(Product.discount_price, Product.price)

SORT_OPTIONS = {
    "price_asc": (_final_price, Product.id),
    "price_desc": (desc(_final_price), Product.id),
    "name_asc": (Product.name, Product.id),
    "name_desc": (desc(Product.name), Product.id),
    "popular": (desc(Product.sold), Product.id),
    "newest": (desc(Product.created_at), desc(Product.id)),
}

class ProductService:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id_or_slug(self, ident: str) -> Product:
        product = None
        if str(ident).isdigit():
            product = self.session.get(Product, int(ident))
        if product is None:
            product = self.session.exec(select(Product).where(Product.slug == str(ident).lower())).first()
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    def to_dict(self, product: Product) -> Dict[str, Any]:
        data = product.model_dump(mode="json", exclude={"rating_version"})
        category = self.session.get(Category, product.category_id)
        data["category"] = {"id": category.id, "name": category.name, "slug": category.slug} if category else None
        return data

    def list_products(
        self,
        page: int = 1,
        limit: int = 12,
        featured: bool = False,
        category: Optional[str] = None,
        search: Optional[str] = None,
        sort: str = "newest",
    ) -> Tuple[List[Dict[str, Any]], int]:
        filters = {
            "page": page,
            "limit": limit,
            "featured": featured,
            "category": category,
            "search": search,
            "sort": sort,
        }

        def load():
            query = select(Product).where(Product.active == True, Product.status != ProductStatus.DRAFT)
            if featured:
                query = query.where(Product.featured == True)
            if category:
                category_obj = self.session.exec(select(Category).where(Category.slug == category)).first()
                if category_obj is None and category.isdigit():
                    category_obj = self.session.get(Category, int(category))
                if not category_obj:
                    return [], 0
                query = query.where(Product.category_id == category_obj.id)
            if search:
                query = query.where(or_(Product.name.ilike(f"%{search}%"), Product.description.ilike(f"%{search}%")))

            total = self.session.exec(query.with_only_columns(func.count(Product.id))).one()
            products = self.session.exec(
                query.order_by(*SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"]))
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
            return [self.to_dict(product) for product in products], total

        return with_cache(cache_keys.products(filters), load)

    def get_product(self, ident: str) -> Dict[str, Any]:
        return with_cache(cache_keys.product(ident), lambda: self.to_dict(self.get_by_id_or_slug(ident)))

    def _check_category(self, category_id: int):
        if not self.session.get(Category, category_id):
            raise HTTPException(status_code=400, detail="Category not found")

    def _check_slug(self, slug: str, exclude_id: Optional[int] = None):
        query = select(Product).where(Product.slug == slug)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        if self.session.exec(query).first():
            raise HTTPException(status_code=400, detail="Product slug already exists")

    def create_product(self, data: Dict[str, Any]) -> Product:
        slug = data.get("slug") or make_slug(data["name"])
        self._check_slug(slug)
        self._check_category(data["category_id"])

        product = Product(**{**data, "slug": slug})
        product.refresh_status()
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        invalidate_catalogue()
        logger.info("product_created", product_id=product.id, slug=product.slug, status=product.status.value)
        return product

    def update_product(self, ident: str, changes: Dict[str, Any]) -> Product:
        product = self.get_by_id_or_slug(ident)
        if "name" in changes and "slug" not in changes:
            changes["slug"] = changes["name"]
        if "slug" in changes:
            changes["slug"] = make_slug(changes["slug"])
            self._check_slug(changes["slug"], product.id)
        if "category_id" in changes:
            self._check_category(changes["category_id"])

        for field, value in changes.items():
            setattr(product, field, value)
        if "quantity" in changes or "active" in changes:
            product.refresh_status()
        product.updated_at = utc_now()

        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)
        invalidate_catalogue()
        return product

    def delete_product(self, ident: str) -> None:
        product = self.get_by_id_or_slug(ident)
        product_id = product.id
        self.session.exec(delete(Review).where(Review.product_id == product_id))
        carts = self.session.exec(
            select(Cart).join(CartItem).where(CartItem.product_id == product_id).distinct()
        ).all()
        for cart in carts:
            for item in [item for item in cart.items if item.product_id == product_id]:
                cart.items.remove(item)
            cart.recalculate_totals()
            self.session.add(cart)
        # Orders keep their line snapshot (name, price) without the product link
        self.session.exec(update(OrderItem).where(OrderItem.product_id == product_id).values(product_id=None))
        self.session.delete(product)
        self.session.commit()
        invalidate_catalogue()
        logger.info("product_deleted", product_id=product_id)
