import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL

load_dotenv()


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


@dataclass
class Settings:
    """Runtime settings, read from the environment (and a local .env file)."""

    database_url: str
    db_pool_size: int = 20
    db_pool_timeout: int = 2
    db_idle_timeout: int = 30
    db_connect_timeout: int = 2
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"
    version: str = "1.0.0"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    rate_limit_window: int = 900
    rate_limit_max: int = 100

    @classmethod
    def from_env(cls, database_url: Optional[str] = None) -> "Settings":
        if database_url is None:
            database_url = os.getenv("DATABASE_URL") or _postgres_url_from_env()
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=database_url,
            db_pool_size=_int_env("DB_POOL_SIZE", 20),
            db_pool_timeout=_int_env("DB_POOL_TIMEOUT", 2),
            db_idle_timeout=_int_env("DB_IDLE_TIMEOUT", 30),
            db_connect_timeout=_int_env("DB_CONNECT_TIMEOUT", 2),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_env("PORT", 3000),
            environment=os.getenv("ENVIRONMENT", "development"),
            version=os.getenv("APP_VERSION", "1.0.0"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            rate_limit_window=_int_env("RATE_LIMIT_WINDOW", 900),
            rate_limit_max=_int_env("RATE_LIMIT_MAX", 100),
        )


def _postgres_url_from_env() -> str:
    # URL.create escapes credentials, so any password character is safe
    url = URL.create(
        drivername="postgresql+psycopg2",
        username=os.getenv("DB_USER", "postgres"),
        password=os.getenv("DB_PASSWORD", "password"),
        host=os.getenv("DB_HOST", "localhost"),
        port=_int_env("DB_PORT", 5432),
        database=os.getenv("DB_NAME", "taskmanager"),
    )
    return url.render_as_string(hide_password=False)
