from sqlmodel import SQLModel, create_engine, Session
from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# SQLite connections are shared across the threadpool FastAPI runs sync routes on
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    pool_pre_ping=not _is_sqlite,
)

def get_session():
    with Session(engine) as session:
        yield session

def create_db_and_tables():
    # Registers every table on the metadata
    import storefront.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("tables_ready", tables=sorted(SQLModel.metadata.tables))
