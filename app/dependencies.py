"""Request-scoped service providers and the session/admin access gates."""

from __future__ import annotations

import logging

from fastapi import Depends, Request, Response

from datastore.session_store import SessionStore
from models.records import Role, Session
from services.credentials import UserService
from services.errors import Forbidden, Unauthenticated
from services.feeds import SensorFeedReader
from settings import Settings

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_service(request: Request) -> UserService:
    return request.app.state.users


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_feed_reader(request: Request) -> SensorFeedReader:
    return request.app.state.feeds


def current_session(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> Session | None:
    return sessions.resolve(request.cookies.get(settings.session_cookie_name))


def require_session(
    request: Request,
    session: Session | None = Depends(current_session),
) -> Session:
    if session is None:
        logger.warning("Unauthorized access attempt", extra={"path": request.url.path})
        raise Unauthenticated()
    return session


def require_admin(
    request: Request,
    session: Session = Depends(require_session),
) -> Session:
    # Uses the role cached at login; role changes apply from the next login.
    if session.user.role is not Role.admin:
        logger.warning(
            "Non-admin access attempt to admin route",
            extra={"path": request.url.path, "email": session.user.email},
        )
        raise Forbidden()
    return session


def set_session_cookie(response: Response, session: Session, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=int((session.expires_at - session.created_at).total_seconds()),
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
