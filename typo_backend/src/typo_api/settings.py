from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, TypeVar

Number = TypeVar("Number", int, float)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/typos.db'
    - SQLITE_TIMEOUT_SECONDS: how long a connection waits on a locked database. Default 5
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - ENABLE_BASIC_AUTH: 'true' (default) to require the workspace API token on report submission
    - DEFAULT_PAGE_SIZE: page size used when the caller does not pass one. Default 20
    - MAX_PAGE_SIZE: upper bound for the page size query parameter. Default 1000
    - LOG_LEVEL: logging level name. Default 'INFO'
    - HOST: interface the bundled server binds to. Default '0.0.0.0'
    - PORT: port the bundled server listens on. Default 8000
    """

    persistence_backend: str
    sqlite_db_path: str
    sqlite_timeout_seconds: float
    cors_allow_origins: List[str]
    enable_basic_auth: bool
    default_page_size: int
    max_page_size: int
    log_level: str
    host: str = "0.0.0.0"
    port: int = 8000


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_positive(value: str, default: Number) -> Number:
    try:
        parsed = type(default)(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        backend = "memory"

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    default_page_size = _parse_positive(_get_env("DEFAULT_PAGE_SIZE", "20"), 20)
    max_page_size = _parse_positive(_get_env("MAX_PAGE_SIZE", "1000"), 1000)

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/typos.db").strip(),
        sqlite_timeout_seconds=_parse_positive(_get_env("SQLITE_TIMEOUT_SECONDS", "5"), 5.0),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        enable_basic_auth=_parse_bool(_get_env("ENABLE_BASIC_AUTH", "true"), True),
        default_page_size=min(default_page_size, max_page_size),
        max_page_size=max_page_size,
        log_level=log_level,
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_positive(_get_env("PORT", "8000"), 8000),
    )
