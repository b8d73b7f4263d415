from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from sqlmodel import Session, select, func

from storefront.core.clock import utc_now
from storefront.core.cache import cache_keys, invalidate_catalogue, with_cache
from storefront.core.logging import get_logger
from storefront.models.category import Category, make_slug
from storefront.models.product import Product

logger = get_logger(__name__)

class CategoryService:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id_or_slug(self, ident: str) -> Category:
        category = None
        if str(ident).isdigit():
            category = self.session.get(Category, int(ident))
        if category is None:
            category = self.session.exec(select(Category).where(Category.slug == str(ident).lower())).first()
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def product_count(self, category_id: int) -> int:
        return self.session.exec(
            select(func.count(Product.id)).where(Product.category_id == category_id, Product.active == True)
        ).one()

    def to_dict(self, category: Category) -> Dict[str, Any]:
        data = category.model_dump(mode="json")
        data["product_count"] = self.product_count(category.id)
        return data

    def list_categories(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        def load():
            query = select(Category).order_by(Category.name)
            if active is not None:
                query = query.where(Category.active == active)
            return [self.to_dict(category) for category in self.session.exec(query).all()]

        return with_cache(cache_keys.categories({"active": active}), load)

    def get_category(self, ident: str) -> Dict[str, Any]:
        return with_cache(cache_keys.category(ident), lambda: self.to_dict(self.get_by_id_or_slug(ident)))

    def _ensure_unique(self, name: str, slug: str, exclude_id: Optional[int] = None):
        query = select(Category).where((Category.name == name) | (Category.slug == slug))
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if self.session.exec(query).first():
            raise HTTPException(status_code=400, detail="Category with this name or slug already exists")

    def create_category(self, data: Dict[str, Any]) -> Category:
        slug = data.get("slug") or make_slug(data["name"])
        self._ensure_unique(data["name"], slug)

        category = Category(**{**data, "slug": slug})
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        invalidate_catalogue()
        logger.info("category_created", category_id=category.id, slug=category.slug)
        return category

    def update_category(self, ident: str, changes: Dict[str, Any]) -> Category:
        category = self.get_by_id_or_slug(ident)
        if "name" in changes and "slug" not in changes:
            changes["slug"] = make_slug(changes["name"])
        self._ensure_unique(changes.get("name", category.name), changes.get("slug", category.slug), category.id)

        for field, value in changes.items():
            setattr(category, field, value)
        category.updated_at = utc_now()
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        invalidate_catalogue()
        return category

    def delete_category(self, ident: str) -> None:
        category = self.get_by_id_or_slug(ident)
        in_use = self.session.exec(
            select(func.count(Product.id)).where(Product.category_id == category.id)
        ).one()
        if in_use:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot delete category: {in_use} product(s) still belong to it",
            )
        category_id = category.id
        self.session.delete(category)
        self.session.commit()
        invalidate_catalogue()
        logger.info("category_deleted", category_id=category_id)
