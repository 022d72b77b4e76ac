"""Unit tests for the in-process session table."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from datastore.session_store import SessionStore
from models.records import Role, UserProfile


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def _profile(email: str = "a@x.com", role: Role = Role.user) -> UserProfile:
    return UserProfile(name="A", email=email, role=role)


def test_create_issues_unique_tokens_with_ttl() -> None:
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(hours=24), clock=clock)

    first = store.create(_profile())
    second = store.create(_profile())

    assert first.token != second.token
    assert len(first.token) >= 32
    assert first.expires_at - first.created_at == timedelta(hours=24)
    assert len(store) == 2


def test_resolve_returns_live_session_with_cached_profile() -> None:
    store = SessionStore(clock=FakeClock())
    session = store.create(_profile(role=Role.admin))

    resolved = store.resolve(session.token)

    assert resolved is session
    assert resolved.user.role is Role.admin


def test_resolve_unknown_or_empty_token_returns_none() -> None:
    store = SessionStore(clock=FakeClock())

    assert store.resolve(None) is None
    assert store.resolve("") is None
    assert store.resolve("not-a-token") is None


def test_expired_session_is_evicted_on_access() -> None:
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(hours=1), clock=clock)
    session = store.create(_profile())

    clock.advance(timedelta(minutes=59))
    assert store.resolve(session.token) is session

    clock.advance(timedelta(minutes=1))
    assert store.resolve(session.token) is None
    assert len(store) == 0


def test_destroy_is_safe_to_repeat() -> None:
    store = SessionStore(clock=FakeClock())
    session = store.create(_profile())

    assert store.destroy(session.token) is True
    assert store.destroy(session.token) is False
    assert store.destroy(None) is False
    assert store.resolve(session.token) is None


def test_purge_expired_drops_only_stale_sessions() -> None:
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(hours=1), clock=clock)
    stale = store.create(_profile("old@x.com"))
    clock.advance(timedelta(minutes=30))
    fresh = store.create(_profile("new@x.com"))
    clock.advance(timedelta(minutes=45))

    assert store.purge_expired() == 1
    assert store.resolve(stale.token) is None
    assert store.resolve(fresh.token) is fresh


def test_create_sweeps_abandoned_sessions() -> None:
    clock = FakeClock()
    store = SessionStore(ttl=timedelta(hours=1), clock=clock)
    for _ in range(5):
        store.create(_profile())
    clock.advance(timedelta(hours=2))

    latest = store.create(_profile())

    assert len(store) == 1
    assert store.resolve(latest.token) is latest
