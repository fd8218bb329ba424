from sqlalchemy import CheckConstraint, Column, DateTime, FetchedValue, Index, Integer, String, Text

from .database import Base, utcnow

TASK_STATUSES = ("pending", "in_progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")


def _in_list(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(_in_list("status", TASK_STATUSES), name="ck_tasks_status"),
        CheckConstraint(_in_list("priority", TASK_PRIORITIES), name="ck_tasks_priority"),
        Index("idx_tasks_status", "status"),
        Index("idx_tasks_priority", "priority"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, server_default="pending")
    priority = Column(String(10), nullable=False, server_default="medium")
    # Both timestamps are owned by the database: a server default on insert,
    # and the update_tasks_updated_at trigger on every update.
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=utcnow())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=utcnow(),
        server_onupdate=FetchedValue(),
    )
    due_date = Column(DateTime(timezone=True), nullable=True)
