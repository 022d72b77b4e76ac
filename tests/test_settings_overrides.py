from __future__ import annotations

from datetime import timedelta
from typing import Iterator

import pytest

from app.main import create_app
from settings import Settings, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults_without_environment(monkeypatch) -> None:
    for name in (
        "DASHBOARD_DATA_DIR",
        "SESSION_TTL_HOURS",
        "SESSION_COOKIE_NAME",
        "SESSION_COOKIE_SECURE",
        "BCRYPT_ROUNDS",
        "HASH_WORKER_COUNT",
        "SEED_DEFAULT_ADMIN",
        "DEFAULT_ADMIN_EMAIL",
        "DEFAULT_ADMIN_PASSWORD",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    assert get_settings() == Settings()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("DASHBOARD_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("SESSION_TTL_HOURS", "2")
    monkeypatch.setenv("SESSION_COOKIE_NAME", "sid")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "true")
    monkeypatch.setenv("BCRYPT_ROUNDS", "5")
    monkeypatch.setenv("HASH_WORKER_COUNT", "3")
    monkeypatch.setenv("SEED_DEFAULT_ADMIN", "no")
    monkeypatch.setenv("DEFAULT_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setenv("DEFAULT_ADMIN_PASSWORD", "s3cret!")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings == Settings(
        data_dir=str(tmp_path / "data"),
        session_ttl_hours=2.0,
        session_cookie_name="sid",
        session_cookie_secure=True,
        bcrypt_rounds=5,
        hash_workers=3,
        seed_default_admin=False,
        default_admin_email="root@example.com",
        default_admin_password="s3cret!",
        log_level="DEBUG",
    )

    app = create_app()
    try:
        assert app.state.sessions.ttl == timedelta(hours=2)
        assert app.state.users.rounds == 5
        assert app.state.users.executor._max_workers == 3
        assert str(app.state.store.root_path) == str(tmp_path / "data")
    finally:
        app.state.users.shutdown()


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SESSION_TTL_HOURS", "forever")
    monkeypatch.setenv("HASH_WORKER_COUNT", "-1")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "maybe")
    monkeypatch.setenv("SESSION_COOKIE_NAME", "   ")

    settings = get_settings()

    assert settings.session_ttl_hours == 24.0
    assert settings.hash_workers == 4
    assert settings.session_cookie_secure is False
    assert settings.session_cookie_name == "dashboard_session"


@pytest.mark.parametrize(("raw", "expected"), [("2", 4), ("12", 12), ("99", 31)])
def test_bcrypt_rounds_are_clamped(monkeypatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("BCRYPT_ROUNDS", raw)

    assert get_settings().bcrypt_rounds == expected
