from contextlib import contextmanager
from datetime import datetime, timezone
import logging

from sqlalchemy import DateTime, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.types import TypeDecorator

from shortener.config import settings

LOGGER = logging.getLogger(__name__)

_PSYCOPG_SCHEMES = ("postgresql://", "postgres://")


def _build_database_url() -> str:
    raw_url = settings.database_url
    for scheme in _PSYCOPG_SCHEMES:
        if raw_url.startswith(scheme):
            return "postgresql+psycopg://" + raw_url[len(scheme):]
    return raw_url


def _connect_args(url: str) -> dict:
    # SQLite connections are handed between the event loop and the thread pool.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


class UTCDateTime(TypeDecorator):
    """Timestamp column that always stores and returns aware UTC values.

    SQLite keeps only the wall-clock part of a datetime, so offsets are
    converted away before binding. Naive inputs are taken to be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


DATABASE_URL = _build_database_url()
engine = create_engine(
    DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args(DATABASE_URL)
)
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
)
Base = declarative_base()


def init_db() -> None:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    from shortener.models.schema import link as _link  # noqa: F401
    from shortener.models.schema import otp as _otp  # noqa: F401
    from shortener.models.schema import user as _user  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope():
    """Yield a session that commits on success and rolls back on any error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as exc:
        LOGGER.debug("Rolling back session after %s", type(exc).__name__)
        session.rollback()
        raise
    finally:
        session.close()
