"""Idempotent schema setup, run on every process start.

Creates the ``tasks`` table, its two secondary indexes and the trigger that
keeps ``updated_at`` current. Every step is safe to repeat.
"""

import logging
import time
from typing import Callable

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from .database import Database
from .models import Task

logger = logging.getLogger(__name__)

MAX_INIT_RETRIES = 10
BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 10.0

INDEX_ORDER = ("idx_tasks_status", "idx_tasks_priority")

TRIGGER_DDL = {
    "postgresql": (
        """
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = CURRENT_TIMESTAMP;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
        """,
        "DROP TRIGGER IF EXISTS update_tasks_updated_at ON tasks",
        """
        CREATE TRIGGER update_tasks_updated_at
            BEFORE UPDATE ON tasks
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column()
        """,
    ),
    # SQLite cannot assign to NEW, so the row is rewritten after the update.
    "sqlite": (
        "DROP TRIGGER IF EXISTS update_tasks_updated_at",
        """
        CREATE TRIGGER update_tasks_updated_at
            AFTER UPDATE ON tasks
            FOR EACH ROW
        BEGIN
            UPDATE tasks
               SET updated_at = STRFTIME('%Y-%m-%d %H:%M:%f', 'NOW')
             WHERE id = NEW.id;
        END
        """,
    ),
}


class DatabaseInitError(RuntimeError):
    """Raised when the schema could not be set up within the retry budget."""


def backoff_delay(attempt: int) -> float:
    return min(BASE_DELAY_SECONDS * 2 ** attempt, MAX_DELAY_SECONDS)


def create_schema(conn: Connection) -> None:
    table = Task.__table__
    table.create(conn, checkfirst=True)

    indexes = {index.name: index for index in table.indexes}
    for name in INDEX_ORDER:
        indexes[name].create(conn, checkfirst=True)

    dialect = conn.dialect.name
    if dialect not in TRIGGER_DDL:
        raise DatabaseInitError(f"No updated_at trigger available for dialect {dialect!r}")
    for statement in TRIGGER_DDL[dialect]:
        conn.exec_driver_sql(statement)


def init_db(
    database: Database,
    max_retries: int = MAX_INIT_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Connect with exponential backoff and make sure the schema exists.

    Raises DatabaseInitError once ``max_retries`` attempts have failed; the
    caller is expected to let it abort startup.
    """
    retries = 0
    while True:
        logger.info("Attempting to connect to database (attempt %d/%d)", retries + 1, max_retries)
        try:
            with database.engine.begin() as conn:
                create_schema(conn)
        except SQLAlchemyError as exc:
            retries += 1
            logger.error("Database initialization attempt %d failed: %s", retries, exc)
            if retries >= max_retries:
                raise DatabaseInitError(
                    f"Failed to initialize database after {max_retries} attempts: {exc}"
                ) from exc
            delay = backoff_delay(retries)
            logger.info("Waiting %.1fs before retry...", delay)
            sleep(delay)
        else:
            logger.info("Database tables initialized successfully")
            return
