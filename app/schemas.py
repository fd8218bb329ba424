from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TaskStatus = Literal["pending", "in_progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


class TaskCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: Optional[datetime] = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return _to_utc(value)


class TaskUpdate(BaseModel):
    """Partial update: every field optional, but an explicit null is rejected."""

    model_config = ConfigDict(extra="forbid")

    # Defaults are not validated, so an omitted field stays None while a
    # supplied null fails the str/datetime type check.
    title: str = Field(default=None, min_length=1, max_length=255)
    description: str = Field(default=None, max_length=1000)
    status: TaskStatus = None
    priority: TaskPriority = None
    due_date: datetime = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return _to_utc(value)


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TaskList(BaseModel):
    tasks: List[TaskOut]
    pagination: Pagination


class TaskDeleted(BaseModel):
    message: str = "Task deleted successfully"
    task: TaskOut


class TaskStats(BaseModel):
    total_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    completed_tasks: int
    high_priority_tasks: int
    overdue_tasks: int
