from sqlalchemy.engine import make_url

from app.config import Settings


def test_database_url_built_from_db_variables(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_USER", "app@user")
    monkeypatch.setenv("DB_PASSWORD", "p@ss/w#rd:1")
    monkeypatch.setenv("DB_HOST", "db")
    monkeypatch.setenv("DB_PORT", "6543")
    monkeypatch.setenv("DB_NAME", "taskmanager")

    url = make_url(Settings.from_env().database_url)
    assert url.drivername == "postgresql+psycopg2"
    assert url.username == "app@user"
    assert url.password == "p@ss/w#rd:1"
    assert url.host == "db"
    assert url.port == 6543
    assert url.database == "taskmanager"


def test_database_url_env_wins(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tasks.db")
    monkeypatch.setenv("DB_HOST", "ignored")
    assert Settings.from_env().database_url == "sqlite:///tasks.db"


def test_settings_defaults(monkeypatch):
    for name in ["PORT", "ENVIRONMENT", "DB_POOL_SIZE", "CORS_ORIGINS", "RATE_LIMIT_MAX"]:
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env(database_url="sqlite://")
    assert settings.port == 3000
    assert settings.environment == "development"
    assert settings.db_pool_size == 20
    assert settings.cors_origins == ["*"]
    assert settings.rate_limit_max == 100
