"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Access levels; only ``admin`` unlocks user management."""

    user = "user"
    admin = "admin"

    @classmethod
    def parse(cls, value: object) -> "Role | None":
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class UserProfile:
    """Public view of an account; safe to serialize or cache in a session."""

    name: str
    email: str
    role: Role


@dataclass(slots=True)
class UserRecord:
    """A row of ``users.csv``."""

    name: str
    email: str
    password_hash: str
    role: Role = Role.user

    @classmethod
    def from_row(cls, row: dict[str, str]) -> "UserRecord":
        return cls(
            name=row.get("name", ""),
            email=row.get("email", ""),
            password_hash=row.get("password", ""),
            role=Role.parse(row.get("role")) or Role.user,
        )

    def to_row(self) -> dict[str, str]:
        return {
            "name": self.name,
            "email": self.email,
            "password": self.password_hash,
            "role": self.role.value,
        }

    def profile(self) -> UserProfile:
        return UserProfile(name=self.name, email=self.email, role=self.role)


@dataclass(slots=True, frozen=True)
class Session:
    """Server-side login state keyed by the cookie token."""

    token: str
    user: UserProfile
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(slots=True)
class SensorReading:
    """A single row of ``feeds.csv``."""

    timestamp: str
    entry_id: str
    field1: float
    field2: float
    field3: float

    @classmethod
    def from_row(cls, row: dict[str, object]) -> "SensorReading":
        return cls(
            timestamp=str(row.get("created_at", "")),
            entry_id=str(row.get("entry_id", "")),
            field1=float(row.get("field1", 0.0)),
            field2=float(row.get("field2", 0.0)),
            field3=float(row.get("field3", 0.0)),
        )
