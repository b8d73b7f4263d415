from sqlmodel import Session, select
from storefront.db.session import engine, create_db_and_tables
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.models.user import UserRole
from storefront.services.auth import AuthService
from storefront.services.settings import SettingsService
from storefront.models.setting import DEFAULTS

ADMIN_EMAIL = "admin@storefront.local"
ADMIN_PASSWORD = "ChangeMe123!"

def seed_admin(session: Session):
    service = AuthService(session)
    if service.get_user_by_email(ADMIN_EMAIL):
        print("Admin user already exists. Skipping.")
        return
    service.register_user(ADMIN_EMAIL, ADMIN_PASSWORD, first_name="Store", last_name="Admin", role=UserRole.ADMIN)
    print(f"Created admin user {ADMIN_EMAIL}")

def seed_catalogue(session: Session):
    # Check if products already exist to avoid duplicates
    existing_products = session.exec(select(Product)).all()
    if existing_products:
        print(f"Database already contains {len(existing_products)} products. Skipping seed.")
        return

    print("Seeding initial catalogue...")
    footwear = Category(name="Footwear", slug="footwear", description="Shoes for road and trail.")
    apparel = Category(name="Apparel", slug="apparel", description="Running tops, shorts and layers.")
    session.add(footwear)
    session.add(apparel)
    session.commit()

    products = [
        Product(
            name="Trail Runner",
            slug="trail-runner",
            description="Grippy, cushioned shoe built for technical mountain trails.",
            category_id=footwear.id,
            price=129.00,
            discount_price=99.00,
            quantity=40,
            size=["40", "41", "42", "43", "44"],
            color=["black", "orange"],
            featured=True,
        ),
        Product(
            name="Road Racer",
            slug="road-racer",
            description="Lightweight racing flat with a carbon plate for fast road miles.",
            category_id=footwear.id,
            price=179.00,
            quantity=4,
            size=["41", "42", "43"],
        ),
        Product(
            name="Merino Base Layer",
            slug="merino-base-layer",
            description="Warm, breathable merino wool long sleeve for cold mornings.",
            category_id=apparel.id,
            price=75.00,
            quantity=25,
            size=["S", "M", "L", "XL"],
            featured=True,
        ),
    ]

    for product in products:
        product.refresh_status()
        session.add(product)

    session.commit()
    print(f"Successfully seeded {len(products)} products!")

def seed_settings(session: Session):
    service = SettingsService(session)
    for name in DEFAULTS:
        service.get_setting(name)
    print("Site settings initialised.")

def seed():
    print("Creating database and tables...")
    create_db_and_tables()

    with Session(engine) as session:
        seed_admin(session)
        seed_catalogue(session)
        seed_settings(session)

if __name__ == "__main__":
    seed()
