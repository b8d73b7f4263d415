from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Storefront API"
    DATABASE_URL: str = "sqlite:///./storefront.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # In-memory cache
    CACHE_DEFAULT_TTL_SECONDS: int = 300
    CACHE_SWEEP_INTERVAL_SECONDS: int = 600

    # Review moderation: may an admin move an approved/rejected review back to pending?
    REVIEW_ALLOW_RESET_TO_PENDING: bool = True

    # Orders: flat shipping charge and tax rate applied to the items subtotal
    ORDER_SHIPPING_PRICE: float = 10.0
    ORDER_TAX_RATE: float = 0.15

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
