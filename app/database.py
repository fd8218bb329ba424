import logging
from typing import Iterator

from fastapi import Depends, Request
from sqlalchemy import DateTime, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.expression import FunctionElement

logger = logging.getLogger(__name__)

Base = declarative_base()


class utcnow(FunctionElement):
    """Current server time, with at least millisecond resolution on every backend."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(utcnow)
def _default_utcnow(element, compiler, **kw):
    return "CURRENT_TIMESTAMP"


@compiles(utcnow, "sqlite")
def _sqlite_utcnow(element, compiler, **kw):
    return "(STRFTIME('%Y-%m-%d %H:%M:%f', 'NOW'))"


class Database:
    """Owns the engine (and therefore the connection pool) and the session factory.

    One instance is built at startup and handed to request handlers through
    the ``get_database`` / ``get_db`` dependencies.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 20,
        pool_timeout: int = 2,
        idle_timeout: int = 30,
        connect_timeout: int = 2,
    ):
        self.url = make_url(url)
        backend = self.url.get_backend_name()
        engine_kwargs = {}
        connect_args = {}

        if backend == "sqlite":
            connect_args["check_same_thread"] = False
        elif backend == "postgresql":
            connect_args["connect_timeout"] = connect_timeout

        if backend == "sqlite" and self.url.database in (None, "", ":memory:"):
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=0,
                pool_timeout=pool_timeout,
                pool_recycle=idle_timeout,
            )

        self.engine = create_engine(self.url, connect_args=connect_args, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            pool_timeout=settings.db_pool_timeout,
            idle_timeout=settings.db_idle_timeout,
            connect_timeout=settings.db_connect_timeout,
        )

    def session(self) -> Session:
        return self.SessionLocal()

    def test_connection(self) -> bool:
        """Borrow one pooled connection and give it back. Never raises."""
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            logger.debug("Database connection established successfully")
            return True
        except SQLAlchemyError as exc:
            logger.error("Database connection failed: %s", exc)
            return False

    def close(self) -> None:
        try:
            self.engine.dispose()
            logger.info("Database connection pool closed")
        except Exception:
            logger.exception("Error closing database connection pool")


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Iterator[Session]:
    db = database.session()
    try:
        yield db
    finally:
        db.close()
