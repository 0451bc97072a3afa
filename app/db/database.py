"""
Primary registration store

SQLAlchemy engine and session factory built from Settings. Any SQLAlchemy URL
works; SQLite is the local default.
"""
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import Settings, get_settings

Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    url = make_url(settings.DATABASE_URL)
    if settings.DATABASE_PASSWORD is not None:
        url = url.set(password=settings.DATABASE_PASSWORD.get_secret_value())

    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@lru_cache
def get_engine() -> Engine:
    return build_engine(get_settings())


@lru_cache
def get_session_factory() -> sessionmaker:
    return build_session_factory(get_engine())


def init_db(engine: Engine = None):
    """Create the registration tables if they do not exist yet."""
    from app.db import tables  # noqa: F401
    Base.metadata.create_all(bind=engine or get_engine())
