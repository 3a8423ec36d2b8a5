"""
Database engine, session factory and schema bootstrap
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from quizcraft.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """SQLite needs thread sharing for FastAPI; in-memory SQLite needs a single connection"""
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(settings.DATABASE_URL, future=True, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables registered on Base"""
    # Register models on the metadata before create_all
    import quizcraft.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database tables ensured: {sorted(Base.metadata.tables.keys())}")
