import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("postgresql"):
    # The absences_no_overlap exclusion constraint only exists on PostgreSQL
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        pool_recycle=settings.db_pool_recycle,
    )
else:
    # SQLite for local development and tests; overlap is enforced in-app only
    engine = create_engine(
        DATABASE_URL, connect_args={"check_same_thread": False}
    )

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session. Services own commit and rollback."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """
    Factory for detached work (notifications, shift cancellation) that runs in
    its own session once the request transaction has committed. Overridable in
    tests like get_db.
    """
    return SessionLocal


def init_db():
    """Create the leave engine tables. Called once from the application lifespan."""
    from app.models import (  # noqa: F401
        user, contract, absence, leave_balance, shift, notification
    )
    Base.metadata.create_all(bind=engine)
    logger.info(f"Schema ready on {engine.dialect.name}")
