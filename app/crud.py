from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.orm import Session

from . import models, schemas
from .database import utcnow

# Columns a client may change through a partial update. Anything outside this
# mapping is never written, whatever the request body held.
UPDATABLE_FIELDS = {
    "title": models.Task.title,
    "description": models.Task.description,
    "status": models.Task.status,
    "priority": models.Task.priority,
    "due_date": models.Task.due_date,
}


def get_task(db: Session, task_id: int) -> Optional[models.Task]:
    return db.get(models.Task, task_id)


def get_tasks(
    db: Session,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[models.Task], int]:
    """Return one page of tasks, newest first, and the total matching the filters."""
    query = db.query(models.Task)
    if status:
        query = query.filter(models.Task.status == status)
    if priority:
        query = query.filter(models.Task.priority == priority)

    tasks = (
        query.order_by(models.Task.created_at.desc(), models.Task.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return tasks, query.count()


def create_task(db: Session, task_in: schemas.TaskCreate) -> models.Task:
    task = models.Task(**task_in.model_dump())
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_values(task_in: schemas.TaskUpdate) -> Dict[Any, Any]:
    supplied = task_in.model_dump(exclude_unset=True)
    return {column: supplied[name] for name, column in UPDATABLE_FIELDS.items() if name in supplied}


def update_task(db: Session, db_task: models.Task, values: Dict[Any, Any]) -> models.Task:
    db.execute(update(models.Task).where(models.Task.id == db_task.id).values(values))
    db.commit()
    # updated_at comes from the trigger, so reload the whole row
    db.refresh(db_task)
    return db_task


def delete_task(db: Session, db_task: models.Task) -> schemas.TaskOut:
    snapshot = schemas.TaskOut.model_validate(db_task)
    db.delete(db_task)
    db.commit()
    return snapshot


def get_stats(db: Session) -> Dict[str, int]:
    task = models.Task
    stmt = select(
        func.count().label("total_tasks"),
        func.count(case((task.status == "pending", 1))).label("pending_tasks"),
        func.count(case((task.status == "in_progress", 1))).label("in_progress_tasks"),
        func.count(case((task.status == "completed", 1))).label("completed_tasks"),
        func.count(case((task.priority == "high", 1))).label("high_priority_tasks"),
        func.count(
            case((and_(task.due_date < utcnow(), task.status != "completed"), 1))
        ).label("overdue_tasks"),
    ).select_from(task)
    return dict(db.execute(stmt).mappings().one())
