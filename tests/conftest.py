import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import storefront.models  # noqa: F401
from storefront.core.cache import cache
from storefront.core.security import create_access_token, get_password_hash
from storefront.db.session import get_session
from storefront.main import app
from storefront.models import Category, Product, Review, ReviewStatus, User, UserRole


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(engine):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def make_user(engine):
    def _make_user(email, role=UserRole.CUSTOMER, password="Secret123!", first_name="Test", last_name="User"):
        with Session(engine) as session:
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                password_hash=get_password_hash(password),
                role=role,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _make_user


@pytest.fixture()
def customer(make_user):
    return make_user("customer@example.com")


@pytest.fixture()
def admin(make_user):
    return make_user("admin@example.com", role=UserRole.ADMIN, first_name="Ada", last_name="Admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


@pytest.fixture()
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def category(engine):
    with Session(engine) as session:
        category = Category(name="Shoes", slug="shoes")
        session.add(category)
        session.commit()
        session.refresh(category)
        return category


@pytest.fixture()
def make_product(engine, category):
    def _make_product(name="Trail Runner", quantity=20, price=100.0, **extra):
        with Session(engine) as session:
            product = Product(
                name=name,
                slug=extra.pop("slug", name.lower().replace(" ", "-")),
                description="A sturdy product used throughout the tests.",
                category_id=category.id,
                price=price,
                quantity=quantity,
                **extra,
            )
            product.refresh_status()
            session.add(product)
            session.commit()
            session.refresh(product)
            return product

    return _make_product


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def add_review(engine, make_user):
    """Insert a review directly, creating a fresh reviewer for each call."""
    counter = {"n": 0}

    def _add_review(product, rating, status=ReviewStatus.APPROVED):
        counter["n"] += 1
        user = make_user(f"reviewer{counter['n']}@example.com")
        with Session(engine) as session:
            review = Review(
                product_id=product.id,
                user_id=user.id,
                rating=rating,
                comment="Perfectly adequate for the price.",
                status=status,
            )
            session.add(review)
            session.commit()
            session.refresh(review)
            return review

    return _add_review


def load(engine, model, ident):
    with Session(engine) as session:
        return session.get(model, ident)
