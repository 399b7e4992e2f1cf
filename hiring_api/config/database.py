"""Database configuration using SQLAlchemy."""

from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from .settings import settings

# Base class for models
Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with settings suited to the database backend.

    SQLite connections are shared with worker threads (asyncio.to_thread),
    so the same-thread check is disabled there. Server databases get a
    bounded, pre-pinged pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """Initialize database tables."""
    # Import all models to register them with Base
    from hiring_api import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def check_db_connection(bind: Engine = engine) -> bool:
    """Check if database connection is working."""
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
