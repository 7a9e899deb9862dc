from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - REMOTE_BACKEND: 'memory' (default, simulated authority) or 'http'
    - REMOTE_BASE_URL: base URL of the task authority. Default 'http://localhost:8000'
    - REMOTE_TIMEOUT_SECONDS: per-request timeout for the http backend (default: 10)
    - REMOTE_LATENCY_MS: artificial latency of the simulated authority (default: 0)
    - REMOTE_FAILURE_RATE: share of simulated calls that fail, 0..1 (default: 0)
    - CONNECTIVITY_POLL_SECONDS: reachability probe interval; 0 disables polling (default: 15)
    - LOG_LEVEL: logging level name (default: INFO)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins for the authority service; '*' by default
    - AUTHORITY_FAILURE_RATE: share of authority requests answered with 503, 0..1 (default: 0)
    - AUTHORITY_SEED_DEMO: 'true' to preload the authority with demo tasks (default: false)
    """

    persistence_backend: str
    sqlite_db_path: str
    remote_backend: str
    remote_base_url: str
    remote_timeout_seconds: float
    remote_latency_ms: int
    remote_failure_rate: float
    connectivity_poll_seconds: float
    log_level: str
    cors_allow_origins: List[str]
    authority_failure_rate: float
    authority_seed_demo: bool


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


def _parse_float(value: str, default: float, minimum: float = 0.0) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    if parsed < minimum:
        return default
    return parsed


def _parse_rate(value: str) -> float:
    """Parse a probability, clamping it to [0, 1]."""
    return min(max(_parse_float(value, 0.0), 0.0), 1.0)


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
        # Fallback to memory if unsupported
        backend = "memory"

    remote_backend = _get_env("REMOTE_BACKEND", "memory").strip().lower()
    if remote_backend not in {"memory", "http"}:
        remote_backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        remote_backend=remote_backend,
        remote_base_url=_get_env("REMOTE_BASE_URL", "http://localhost:8000").strip().rstrip("/"),
        remote_timeout_seconds=_parse_float(_get_env("REMOTE_TIMEOUT_SECONDS", "10"), 10.0, minimum=0.001),
        remote_latency_ms=int(_parse_float(_get_env("REMOTE_LATENCY_MS", "0"), 0.0)),
        remote_failure_rate=_parse_rate(_get_env("REMOTE_FAILURE_RATE", "0")),
        connectivity_poll_seconds=_parse_float(_get_env("CONNECTIVITY_POLL_SECONDS", "15"), 15.0),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        authority_failure_rate=_parse_rate(_get_env("AUTHORITY_FAILURE_RATE", "0")),
        authority_seed_demo=_parse_bool(_get_env("AUTHORITY_SEED_DEMO", "false"), False),
    )
