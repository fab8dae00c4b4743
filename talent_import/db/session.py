import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from talent_import.core.config import settings

logger = logging.getLogger(__name__)

_engine = None

# Don't create the session factory at import time
SessionLocal = None

Base = declarative_base()


def _masked_url(database_url: str) -> str:
    try:
        return make_url(database_url).render_as_string(hide_password=True)
    except Exception:  # pragma: no cover
        return "<unparseable DATABASE_URL>"


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        logger.info("Creating database engine for %s", _masked_url(settings.database_url))
        _engine = create_engine(settings.database_url, pool_pre_ping=True)
    return _engine


def get_session_local():
    global SessionLocal
    if SessionLocal is None:
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return SessionLocal


def create_tables(engine: Engine = None) -> None:
    """Create the entity tables if they do not exist yet."""
    # Models register themselves on Base.metadata at import time
    from talent_import.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
