from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import get_settings
import logging

logger = logging.getLogger(__name__)
settings = get_settings()

db_url = settings.database_url
is_sqlite = db_url.startswith("sqlite")

engine = create_engine(
    db_url,
    connect_args={"check_same_thread": False} if is_sqlite else {},
    pool_pre_ping=not is_sqlite,
)

if is_sqlite:
    # Without this, ON DELETE CASCADE doesn't work
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_sqlite_schema():
    """Create tables for local SQLite runs. PostgreSQL goes through Alembic."""
    if not is_sqlite:
        return
    import os
    from app import models  # noqa: F401  registers tables on Base

    path = db_url.replace("sqlite:///", "", 1)
    directory = os.path.dirname(path)
    if path != ":memory:" and directory:
        os.makedirs(directory, exist_ok=True)

    Base.metadata.create_all(bind=engine)
    logger.info("SQLite schema ready")
