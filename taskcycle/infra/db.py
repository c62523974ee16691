from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from taskcycle.config import SETTINGS

logger = logging.getLogger(__name__)

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str = SETTINGS.database_url) -> Engine:
    options: dict = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if database_url in _MEMORY_URLS:
            options["poolclass"] = StaticPool
    return create_engine(database_url, **options)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False)


engine = build_engine()
SessionLocal = build_session_factory(engine)
Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    bind = bind or engine
    with bind.connect() as connection:
        connection.execute(text("SELECT 1"))
    logger.info("Connected to %s", bind.url.render_as_string(hide_password=True))
