"""Health endpoints for orchestrator probes.

``/live`` never touches the database, so a process that is only waiting on
its database is not restarted. ``/ready`` and ``/`` probe the pool once.
"""

import logging
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..database import Database, get_database

logger = logging.getLogger(__name__)

router = APIRouter()

START_TIME = time.monotonic()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uptime() -> float:
    return round(time.monotonic() - START_TIME, 3)


def _memory_report() -> dict:
    # used: resident set size; total: virtual memory size of the process
    info = psutil.Process().memory_info()
    return {"used": _megabytes(info.rss), "total": _megabytes(info.vms)}


def _megabytes(value: int) -> str:
    return f"{round(value / 1024 / 1024)} MB"


@router.get("/live")
def liveness():
    return {"status": "alive", "timestamp": _timestamp(), "uptime": _uptime()}


@router.get("/ready")
def readiness(database: Database = Depends(get_database)):
    try:
        ready = database.test_connection()
    except Exception as exc:
        logger.exception("Readiness check failed")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "timestamp": _timestamp(), "error": str(exc)},
        )

    if not ready:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not ready",
                "timestamp": _timestamp(),
                "reason": "database not available",
            },
        )
    return {"status": "ready", "timestamp": _timestamp()}


@router.get("")
def health(request: Request, database: Database = Depends(get_database)):
    settings = request.app.state.settings
    try:
        db_healthy = database.test_connection()
        report = {
            "status": "healthy" if db_healthy else "unhealthy",
            "timestamp": _timestamp(),
            "uptime": _uptime(),
            "environment": settings.environment,
            "version": settings.version,
            "database": {"status": "connected" if db_healthy else "disconnected"},
            "memory": _memory_report(),
        }
    except Exception as exc:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "timestamp": _timestamp(), "error": str(exc)},
        )

    if not db_healthy:
        return JSONResponse(status_code=503, content=report)
    return report
