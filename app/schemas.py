"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.records import Role, SensorReading


class RegisterRequest(BaseModel):
    """Self-service sign-up payload; missing fields are rejected by the service."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AddUserRequest(RegisterRequest):
    role: Optional[str] = Field(default=None, description="Defaults to 'user'.")


class RoleUpdateRequest(BaseModel):
    role: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class UserOut(BaseModel):
    """Account as exposed to clients; the password hash is never included."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str
    role: Role


class LoginResponse(MessageResponse):
    user: UserOut


class AuthStatus(BaseModel):
    authenticated: bool
    user: Optional[UserOut] = None


class UserListResponse(BaseModel):
    users: List[UserOut] = Field(default_factory=list)


class ReadingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: str
    entry_id: str
    field1: float
    field2: float
    field3: float


class SensorDataResponse(BaseModel):
    """Dashboard payload: ``latest`` is an empty object when no readings exist."""

    latest: Dict[str, Union[float, str]] = Field(default_factory=dict)
    history: List[ReadingOut] = Field(default_factory=list)
    recent: List[ReadingOut] = Field(default_factory=list)


def latest_payload(reading: Optional[SensorReading]) -> Dict[str, Union[float, str]]:
    if reading is None:
        return {}
    return {
        "field1": reading.field1,
        "field2": reading.field2,
        "field3": reading.field3,
        "timestamp": reading.timestamp,
    }
