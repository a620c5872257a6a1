"""
Database engine, session factory and declarative base
"""
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from storehouse.config import settings

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def commit_or_rollback(db):
    """Commit the session; on failure roll back before re-raising"""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_db():
    """Yield a database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables"""
    # Register models with Base before create_all
    from storehouse import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
