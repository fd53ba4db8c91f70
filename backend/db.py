import logging
import os

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

logger = logging.getLogger(__name__)


def resolve_database_url(environ=os.environ) -> str:
    """Database URL from the environment, defaulting to SQLite for local dev."""
    url = environ.get("DATABASE_URL")
    if not url:
        # Guard against SQLite fallback in production
        if environ.get("ENV", "dev").lower() in ("prod", "production"):
            raise RuntimeError(
                "DATABASE_URL missing in production; refusing to start with SQLite. "
                "Please configure DATABASE_URL environment variable."
            )
        # Use persistent storage path if running in container with volume mount
        url = f"sqlite:///{environ.get('DATABASE_PATH', './standups.db')}"

    # SQLAlchemy needs postgresql://, some hosts hand out postgres://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


DATABASE_URL = resolve_database_url()


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite connections may be shared across request threads."""
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False, "timeout": 30})
    return create_engine(url, echo=False, pool_pre_ping=True)


# Log database driver for observability
db_driver = DATABASE_URL.split(":", 1)[0] if ":" in DATABASE_URL else "unknown"
logger.info(f"DB_URL_DRIVER={db_driver}")

# Create engine
engine = build_engine(DATABASE_URL)


def create_db_and_tables(bind: Engine | None = None):
    """Create database and tables if they don't exist.
    This is safe to call multiple times - it won't wipe existing data.
    """
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Get database session."""
    with Session(engine) as session:
        yield session
