from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DATA_DIR_ENV = "DASHBOARD_DATA_DIR"
_SESSION_TTL_ENV = "SESSION_TTL_HOURS"
_COOKIE_NAME_ENV = "SESSION_COOKIE_NAME"
_COOKIE_SECURE_ENV = "SESSION_COOKIE_SECURE"
_BCRYPT_ROUNDS_ENV = "BCRYPT_ROUNDS"
_HASH_WORKERS_ENV = "HASH_WORKER_COUNT"
_SEED_ADMIN_ENV = "SEED_DEFAULT_ADMIN"
_ADMIN_EMAIL_ENV = "DEFAULT_ADMIN_EMAIL"
_ADMIN_PASSWORD_ENV = "DEFAULT_ADMIN_PASSWORD"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    data_dir: str = "./data"
    session_ttl_hours: float = 24.0
    session_cookie_name: str = "dashboard_session"
    session_cookie_secure: bool = False
    bcrypt_rounds: int = 10
    hash_workers: int = 4
    seed_default_admin: bool = True
    default_admin_email: str = "admin@example.com"
    # Seeded credential; override it or disable seeding outside development.
    default_admin_password: str = "admin123"
    log_level: str = "INFO"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_bcrypt_rounds(default: int) -> int:
    # bcrypt accepts cost factors 4..31 only.
    return min(max(_read_positive_int(_BCRYPT_ROUNDS_ENV, default), 4), 31)


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_dir=_read_str_env(_DATA_DIR_ENV, "./data"),
        session_ttl_hours=_read_positive_float(_SESSION_TTL_ENV, 24.0),
        session_cookie_name=_read_str_env(_COOKIE_NAME_ENV, "dashboard_session"),
        session_cookie_secure=_read_bool(_COOKIE_SECURE_ENV, False),
        bcrypt_rounds=_read_bcrypt_rounds(10),
        hash_workers=_read_positive_int(_HASH_WORKERS_ENV, 4),
        seed_default_admin=_read_bool(_SEED_ADMIN_ENV, True),
        default_admin_email=_read_str_env(_ADMIN_EMAIL_ENV, "admin@example.com"),
        default_admin_password=_read_str_env(_ADMIN_PASSWORD_ENV, "admin123"),
        log_level=_read_log_level("INFO"),
    )
