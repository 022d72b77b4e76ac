"""HTTP route definitions for the service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from app.dependencies import (
    clear_session_cookie,
    current_session,
    get_app_settings,
    get_feed_reader,
    get_session_store,
    get_user_service,
    require_admin,
    require_session,
    set_session_cookie,
)
from app.schemas import (
    AddUserRequest,
    AuthStatus,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ReadingOut,
    RegisterRequest,
    RoleUpdateRequest,
    SensorDataResponse,
    UserListResponse,
    UserOut,
    latest_payload,
)
from datastore.session_store import SessionStore
from models.records import Session
from services.credentials import UserService
from services.errors import StorageFailure
from services.feeds import SensorFeedReader
from settings import Settings
from storage.csv_store import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_INPUT_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
_SESSION_ERRORS = {401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
_ADMIN_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/register",
    response_model=MessageResponse,
    responses=_INPUT_ERRORS,
    summary="Create a regular user account.",
)
async def register(
    payload: RegisterRequest,
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    logger.info("Registration attempt", extra={"email": payload.email})
    await users.register(payload.name or "", payload.email or "", payload.password or "")
    return MessageResponse(message="Registration successful")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={**_INPUT_ERRORS, 401: {"model": ErrorResponse}},
    summary="Verify credentials and start a session.",
)
async def login(
    payload: LoginRequest,
    response: Response,
    users: UserService = Depends(get_user_service),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> LoginResponse:
    logger.info("Login attempt", extra={"email": payload.email})
    profile = await users.authenticate(payload.email or "", payload.password or "")
    session = sessions.create(profile)
    set_session_cookie(response, session, settings)
    return LoginResponse(message="Login successful", user=UserOut.model_validate(profile))


@router.get(
    "/logout",
    response_model=MessageResponse,
    summary="Destroy the current session.",
)
async def logout(
    request: Request,
    response: Response,
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    token = request.cookies.get(settings.session_cookie_name)
    session = sessions.resolve(token)
    sessions.destroy(token)
    clear_session_cookie(response, settings)
    logger.info("Logout", extra={"email": session.user.email if session else None})
    return MessageResponse(message="Logout successful")


@router.get(
    "/check-auth",
    response_model=AuthStatus,
    response_model_exclude_none=True,
    summary="Report whether the caller holds a session.",
)
async def check_auth(session: Session | None = Depends(current_session)) -> AuthStatus:
    if session is None:
        return AuthStatus(authenticated=False)
    return AuthStatus(authenticated=True, user=UserOut.model_validate(session.user))


@router.get(
    "/sensors",
    response_model=SensorDataResponse,
    responses=_SESSION_ERRORS,
    summary="Latest reading plus history and recent windows.",
)
async def sensors(
    _session: Session = Depends(require_session),
    feeds: SensorFeedReader = Depends(get_feed_reader),
) -> SensorDataResponse:
    try:
        snapshot = await run_in_threadpool(feeds.snapshot)
    except StorageError as exc:
        logger.exception("Error fetching sensor data", extra={"reason": str(exc)})
        raise StorageFailure("Failed to fetch sensor data") from exc

    if snapshot.latest is None:
        logger.warning("No sensor data found")
    return SensorDataResponse(
        latest=latest_payload(snapshot.latest),
        history=[ReadingOut.model_validate(reading) for reading in snapshot.history],
        recent=[ReadingOut.model_validate(reading) for reading in snapshot.recent],
    )


@router.get(
    "/users",
    response_model=UserListResponse,
    responses=_ADMIN_ERRORS,
    summary="List all accounts (admin only).",
)
async def list_users(
    _session: Session = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> UserListResponse:
    profiles = await users.list_users()
    return UserListResponse(users=[UserOut.model_validate(profile) for profile in profiles])


@router.post(
    "/users/add",
    response_model=MessageResponse,
    responses=_ADMIN_ERRORS,
    summary="Create an account with an explicit role (admin only).",
)
async def add_user(
    payload: AddUserRequest,
    _session: Session = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    logger.info("Adding new user", extra={"email": payload.email})
    await users.add_user(
        payload.name or "",
        payload.email or "",
        payload.password or "",
        payload.role,
    )
    return MessageResponse(message="User added successfully")


@router.put(
    "/users/{email}",
    response_model=MessageResponse,
    responses=_ADMIN_ERRORS,
    summary="Change an account's role (admin only).",
)
async def update_user_role(
    email: str,
    payload: RoleUpdateRequest,
    _session: Session = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    await users.update_role(email, payload.role)
    return MessageResponse(message="User role updated successfully")


@router.delete(
    "/users/{email}",
    response_model=MessageResponse,
    responses=_ADMIN_ERRORS,
    status_code=status.HTTP_200_OK,
    summary="Delete an account other than the caller's (admin only).",
)
async def delete_user(
    email: str,
    session: Session = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> MessageResponse:
    await users.delete_user(email, acting_email=session.user.email)
    return MessageResponse(message="User deleted successfully")


meta_router = APIRouter()


@meta_router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
