import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .database import Database
from .db_init import init_db
from .logging_config import setup_logging
from .middleware import RateLimiter, RateLimitMiddleware, SecurityHeadersMiddleware
from .routers import health, tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A DatabaseInitError escapes from here and aborts startup.
    await run_in_threadpool(init_db, app.state.database)
    logger.info("Task Manager API ready (%s)", app.state.settings.environment)
    yield
    app.state.database.close()


def _validation_messages(exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return messages


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and not isinstance(exc, HTTPException):
        detail = "Route not found"
    return JSONResponse(status_code=exc.status_code, content={"error": detail}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": _validation_messages(exc)},
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    app = FastAPI(title="Task Manager API", version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)

    # Last added runs first: security headers wrap every response, 429s included.
    app.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(settings.rate_limit_max, settings.rate_limit_window),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(health.router, prefix="/api/health", tags=["health"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])

    @app.get("/")
    def root():
        return {
            "message": "Task Manager API",
            "version": settings.version,
            "environment": settings.environment,
            "endpoints": {
                "health": "/api/health",
                "ready": "/api/health/ready",
                "live": "/api/health/live",
                "tasks": "/api/tasks",
                "stats": "/api/tasks/stats/summary",
            },
        }

    return app


def run() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run("app.main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
