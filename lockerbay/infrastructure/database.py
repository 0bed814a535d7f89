from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_store_engine(settings: Settings) -> Engine:
    """
    Engine for the configured store. Every store round trip is bounded by `lock_timeout_seconds`.
    """
    url = settings.database_url
    timeout = settings.lock_timeout_seconds

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
        _use_immediate_transactions(engine)
    else:
        timeout_ms = int(timeout * 1000)
        connect_args = {}
        if url.startswith("postgresql"):
            connect_args["options"] = f"-c lock_timeout={timeout_ms} -c statement_timeout={timeout_ms}"
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_timeout=timeout,
            connect_args=connect_args,
        )

    logger.info("Store engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def _use_immediate_transactions(engine: Engine) -> None:
    """
    SQLite: take the write lock when the transaction starts.

    A deferred transaction that reads and then writes can fail with "database is locked"
    instead of waiting, when two writers try to upgrade their shared locks at once. With
    BEGIN IMMEDIATE writers queue on the busy timeout.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
