import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.cache import sweep_periodically
from storefront.core.config import settings
from storefront.core.errors import register_exception_handlers
from storefront.core.logging import configure_logging, get_logger
from storefront.db.session import create_db_and_tables
from storefront.routers import admin, auth, cart, categories, customers, homepage, orders, products, reviews
from storefront.routers import settings as settings_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    sweeper = asyncio.create_task(sweep_periodically())
    logger.info("startup_complete", database=settings.DATABASE_URL.split("://")[0])
    yield
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Storefront and admin API: catalogue, reviews, carts and site settings",
)

@app.get("/")
def read_root():
    return {"message": "Welcome to the Storefront API. Visit /docs for Swagger UI."}

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
app.include_router(homepage.router, prefix="/api/homepage", tags=["homepage"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["settings"])
app.include_router(admin.router, prefix="/api/stats", tags=["admin"])

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
