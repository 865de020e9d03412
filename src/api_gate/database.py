from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from typing import Optional
import redis
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str, timeout: Optional[float] = None) -> Engine:
    """Create the SQLAlchemy engine for the configured database.

    ``timeout`` bounds how long a connection waits for the pool and, on
    SQLite, for a database lock.
    """
    if "sqlite" in database_url:
        connect_args = {"check_same_thread": False}
        if timeout is not None:
            connect_args["timeout"] = timeout
        return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)

    engine_args = {}
    if timeout is not None:
        engine_args["pool_timeout"] = timeout
    return create_engine(database_url, pool_pre_ping=True, **engine_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory shared by the stores."""
    return sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )


def get_redis_client(redis_url: Optional[str]):
    """Connect to Redis if configured. Returns None when unavailable."""
    if not redis_url:
        return None

    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()  # Test connection
        logger.info("✅ Redis connected successfully")
        return client
    except Exception as e:
        logger.warning(f"⚠️ Redis not available: {e}")
        return None


def create_tables(engine: Engine):
    """Create all database tables."""
    # Register models on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables created")
