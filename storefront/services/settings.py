from typing import Dict, Any, List
from copy import deepcopy
from fastapi import HTTPException
from sqlmodel import Session, select

from storefront.core.clock import utc_now
from storefront.core.cache import cache, cache_keys, with_cache
from storefront.core.logging import get_logger
from storefront.models.category import Category
from storefront.models.product import Product, ProductStatus
from storefront.models.setting import SiteSetting, DEFAULTS, HOMEPAGE

logger = get_logger(__name__)

FEATURED_LIMIT = 8

class SettingsService:
    def __init__(self, session: Session):
        self.session = session

    def _defaults(self, name: str) -> Dict[str, Any]:
        if name not in DEFAULTS:
            raise HTTPException(status_code=404, detail=f"Unknown setting '{name}'")
        return deepcopy(DEFAULTS[name])

    def get_setting(self, name: str) -> SiteSetting:
        """Return the stored setting, materialising the defaults on first read."""
        defaults = self._defaults(name)
        setting = self.session.exec(select(SiteSetting).where(SiteSetting.name == name)).first()
        if setting is None:
            setting = SiteSetting(name=name, value=defaults)
            self.session.add(setting)
            self.session.commit()
            self.session.refresh(setting)
        return setting

    def get_value(self, name: str) -> Dict[str, Any]:
        value = self._defaults(name)
        value.update(self.get_setting(name).value or {})
        return value

    def update_setting(self, name: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        setting = self.get_setting(name)
        value = self._defaults(name)
        value.update(setting.value or {})
        value.update(changes)
        # JSON columns only notice reassignment
        setting.value = value
        setting.updated_at = utc_now()
        self.session.add(setting)
        self.session.commit()
        self.session.refresh(setting)
        cache.invalidate_pattern(r"^homepage:")
        logger.info("setting_updated", name=name, keys=sorted(changes))
        return setting.value

    def reinitialize(self, name: str) -> Dict[str, Any]:
        setting = self.get_setting(name)
        setting.value = self._defaults(name)
        setting.updated_at = utc_now()
        self.session.add(setting)
        self.session.commit()
        self.session.refresh(setting)
        cache.invalidate_pattern(r"^homepage:")
        logger.info("setting_reinitialized", name=name)
        return setting.value

    def homepage_data(self) -> Dict[str, Any]:
        return with_cache(cache_keys.homepage(), self._load_homepage)

    def _load_homepage(self) -> Dict[str, Any]:
        config = self.get_value(HOMEPAGE)

        featured = self.session.exec(
            select(Product)
            .where(Product.active == True, Product.featured == True, Product.status != ProductStatus.DRAFT)
            .order_by(Product.created_at.desc())
            .limit(FEATURED_LIMIT)
        ).all()
        categories = self.session.exec(
            select(Category).where(Category.active == True).order_by(Category.name)
        ).all()

        hero_banners: List[Dict[str, Any]] = [
            banner
            for banner in config.get("heroBanners") or []
            if isinstance(banner, dict) and banner.get("active", True)
        ]
        return {
            "hero_banners": hero_banners,
            "featured_products": [
                {
                    "id": product.id,
                    "name": product.name,
                    "slug": product.slug,
                    "price": product.price,
                    "final_price": product.final_price,
                    "discount_percentage": product.discount_percentage,
                    "image": product.image,
                    "total_rating": product.total_rating,
                    "review_count": product.review_count,
                }
                for product in featured
            ],
            "categories": [
                {"id": category.id, "name": category.name, "slug": category.slug, "image": category.image}
                for category in categories
            ],
            "settings": config,
        }
