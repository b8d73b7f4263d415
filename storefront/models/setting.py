from typing import Optional, Dict, Any
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from storefront.core.clock import utc_now

HOMEPAGE = "homepage"
WEBSITE_THEME = "website-theme"

DEFAULT_WEBSITE_THEME: Dict[str, Any] = {
    "primaryColor": "#00f5ff",
    "secondaryColor": "#8b5cf6",
    "accentColor": "#ec4899",
    "buttonPrimaryColor": "#00f5ff",
    "buttonSecondaryColor": "#8b5cf6",
    "buttonHoverColor": "#00d9ff",
    "buttonTextColor": "#ffffff",
    "headerBackgroundColor": "rgba(10, 10, 15, 0.95)",
    "headerTextColor": "#ffffff",
    "headerBorderColor": "rgba(0, 245, 255, 0.2)",
    "footerBackgroundColor": "rgba(10, 10, 15, 0.98)",
    "footerTextColor": "#ffffff",
    "footerLinkColor": "#00f5ff",
    "backgroundColor": "#0a0a0f",
    "surfaceColor": "rgba(255, 255, 255, 0.05)",
    "textPrimaryColor": "#ffffff",
    "textSecondaryColor": "#a1a1aa",
    "borderColor": "rgba(255, 255, 255, 0.1)",
    "shadowColor": "rgba(0, 245, 255, 0.2)",
    "animation3dEnabled": True,
    "glassmorphismEnabled": True,
    "particleEffectsEnabled": True,
}

DEFAULT_HOMEPAGE: Dict[str, Any] = {
    "heroBanners": [],
    "categorySliders": [],
    "productSliders": [],
    "showFeaturedCategories": True,
    "showNewArrivals": True,
    "showBestsellers": True,
    "backgroundColor": "#0a0a0f",
    "accentColor": "#00f5ff",
    "animation3dEnabled": True,
}

DEFAULTS = {
    HOMEPAGE: DEFAULT_HOMEPAGE,
    WEBSITE_THEME: DEFAULT_WEBSITE_THEME,
}

class SiteSetting(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    value: Dict[str, Any] = Field(default={}, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
