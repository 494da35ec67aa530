import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from cali.core.exceptions import ConfigurationError

SQLITE_PREFIX = "sqlite:///"
IN_MEMORY_SQLITE_URLS = {"sqlite://", "sqlite:///:memory:"}


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc


def _get_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _absolute_sqlite_url(url: str) -> str:
    if url in IN_MEMORY_SQLITE_URLS or not url.startswith(SQLITE_PREFIX):
        return url

    path = url[len(SQLITE_PREFIX):]
    if os.path.isabs(path):
        return url
    return f"{SQLITE_PREFIX}{Path(path).resolve()}"


@dataclass(frozen=True)
class Settings:
    app_env: str = "development"
    database_url: str = "sqlite:///./cali.db"

    db_pool_size: int = 5
    db_max_overflow: int = 20
    db_pool_recycle: int = 300
    db_pool_timeout: int = 30
    db_busy_timeout: int = 5
    db_echo: bool = False

    static_dir: str = "./web/static"

    default_user_id: int = 1
    default_username: str = "default"

    list_window_days: int = 30
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = field(default=("http://localhost:4200",))

    @property
    def is_in_memory_sqlite(self) -> bool:
        return self.database_url in IN_MEMORY_SQLITE_URLS

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build the settings once from the process environment (and `.env`)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    defaults = Settings()

    return Settings(
        app_env=environ.get("APP_ENV", defaults.app_env),
        database_url=_absolute_sqlite_url(environ.get("DATABASE_URL", defaults.database_url)),
        db_pool_size=_get_int(environ, "DB_POOL_SIZE", defaults.db_pool_size),
        db_max_overflow=_get_int(environ, "DB_MAX_OVERFLOW", defaults.db_max_overflow),
        db_pool_recycle=_get_int(environ, "DB_POOL_RECYCLE", defaults.db_pool_recycle),
        db_pool_timeout=_get_int(environ, "DB_POOL_TIMEOUT", defaults.db_pool_timeout),
        db_busy_timeout=_get_int(environ, "DB_BUSY_TIMEOUT", defaults.db_busy_timeout),
        db_echo=_get_bool(environ.get("DB_ECHO"), default=defaults.db_echo),
        static_dir=environ.get("STATIC_DIR", defaults.static_dir),
        default_user_id=_get_int(environ, "DEFAULT_USER_ID", defaults.default_user_id),
        default_username=environ.get("DEFAULT_USERNAME", defaults.default_username),
        list_window_days=_get_int(environ, "LIST_WINDOW_DAYS", defaults.list_window_days),
        log_level=environ.get("LOG_LEVEL", defaults.log_level).upper(),
        cors_origins=_get_list(environ.get("CORS_ORIGINS"), defaults.cors_origins),
    )


def validate_runtime_config(settings: Settings) -> None:
    if settings.app_env.lower() == "production" and settings.is_in_memory_sqlite:
        raise ConfigurationError("DATABASE_URL must point to a persistent store in production.")
    if settings.default_user_id < 1:
        raise ConfigurationError("DEFAULT_USER_ID must be a positive integer.")
    if settings.list_window_days < 1:
        raise ConfigurationError("LIST_WINDOW_DAYS must be a positive integer.")
