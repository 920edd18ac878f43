"""
Database connection and session management.
"""

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from superapp.core.config import settings
from superapp.core.errors import StoreConflict, StoreError


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with the request threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# Create database engine
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log SQL queries in debug mode
    pool_pre_ping=True,   # Verify connections before using
    connect_args=_connect_args(settings.DATABASE_URL),
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def get_db():
    """
    Dependency that provides a database session.
    Usage in FastAPI routes:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit(db) -> None:
    """
    Commit the session, translating driver errors into the app taxonomy.

    Uniqueness violations become StoreConflict so ingestion paths can treat
    them as "already exists"; anything else becomes StoreError. The session
    is rolled back in both cases.
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise StoreConflict(str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(details=str(e)) from e
