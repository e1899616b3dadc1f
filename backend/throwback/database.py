"""Database engine, session factory and FastAPI session dependency."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator

from throwback.config import settings

engine_options = {"pool_pre_ping": True, "echo": settings.DEBUG}

if settings.is_sqlite:
    # Request handlers and scheduler threads share SQLite connections
    engine_options["connect_args"] = {"check_same_thread": False}
else:
    engine_options["pool_size"] = settings.DATABASE_POOL_SIZE
    engine_options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW

engine = create_engine(settings.DATABASE_URL, **engine_options)


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Connect hook: SQLite only honours ON DELETE rules with this pragma set."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if settings.is_sqlite:
    event.listen(engine, "connect", enable_sqlite_foreign_keys)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create every table registered on ``Base``."""
    import throwback.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
