import logging
import math
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()

TASK_ID_PATTERN = re.compile(r"[0-9]+")

# keeps (page - 1) * limit inside a 64-bit OFFSET
MAX_PAGING_VALUE = 2**31 - 1


def parse_task_id(task_id: str) -> int:
    if not TASK_ID_PATTERN.fullmatch(task_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid task ID")
    return int(task_id)


def load_task(task_id: int = Depends(parse_task_id), db: Session = Depends(get_db)) -> models.Task:
    try:
        task = crud.get_task(db, task_id)
    except Exception:
        logger.exception("Error fetching task %s", task_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch task")
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.get("", response_model=schemas.TaskList)
def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    page: int = Query(1, ge=1, le=MAX_PAGING_VALUE),
    limit: int = Query(10, ge=1, le=MAX_PAGING_VALUE),
    db: Session = Depends(get_db),
):
    try:
        tasks, total = crud.get_tasks(db, status=status_filter, priority=priority, page=page, limit=limit)
    except Exception:
        logger.exception("Error fetching tasks")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch tasks")
    return {
        "tasks": tasks,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.get("/stats/summary", response_model=schemas.TaskStats)
def task_stats(db: Session = Depends(get_db)):
    try:
        return crud.get_stats(db)
    except Exception:
        logger.exception("Error fetching task stats")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch task statistics"
        )


@router.get("/{task_id}", response_model=schemas.TaskOut)
def get_task(task: models.Task = Depends(load_task)):
    return task


@router.post("", response_model=schemas.TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(task_in: schemas.TaskCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_task(db, task_in)
    except Exception:
        logger.exception("Error creating task")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create task")


@router.put("/{task_id}", response_model=schemas.TaskOut)
def update_task(
    task_in: Optional[schemas.TaskUpdate] = None,
    db_task: models.Task = Depends(load_task),
    db: Session = Depends(get_db),
):
    # The lookup in load_task runs before the body is validated, so a missing
    # id is a 404 whatever the body holds.
    task_id = db_task.id
    values = crud.update_values(task_in) if task_in is not None else {}
    if not values:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid fields to update")
    try:
        return crud.update_task(db, db_task, values)
    except Exception:
        logger.exception("Error updating task %s", task_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update task")


@router.delete("/{task_id}", response_model=schemas.TaskDeleted)
def delete_task(db_task: models.Task = Depends(load_task), db: Session = Depends(get_db)):
    task_id = db_task.id
    try:
        snapshot = crud.delete_task(db, db_task)
    except Exception:
        logger.exception("Error deleting task %s", task_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete task")
    return {"message": "Task deleted successfully", "task": snapshot}
