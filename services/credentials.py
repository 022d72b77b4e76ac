"""Account storage, password hashing and login verification."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from functools import partial
from typing import Callable, Iterator, List, Optional, TypeVar

import bcrypt

from models.records import Role, UserProfile, UserRecord
from services.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidInput,
    NotFound,
    StorageFailure,
)
from storage.csv_store import CsvSchema, Record, RecordStore, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

USERS_SCHEMA = CsvSchema(filename="users.csv", columns=("name", "email", "password", "role"))
MIN_PASSWORD_LENGTH = 6
DEFAULT_ADMIN_NAME = "Admin User"

# bcrypt ignores (or, in recent releases, rejects) input past 72 bytes.
_BCRYPT_MAX_BYTES = 72


def _encode_password(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode_password(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_encode_password(password), password_hash.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        return False


class UserService:
    """Async facade over the ``users`` CSV.

    Hashing and file access run on the service's own thread pool so the event
    loop is never blocked by bcrypt.
    """

    def __init__(self, store: RecordStore, rounds: int = 10, workers: int = 4) -> None:
        self.store = store
        self.rounds = rounds
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="users")

    async def register(self, name: str, email: str, password: str) -> UserProfile:
        return await self._run(
            self._create_user,
            name,
            email,
            password,
            Role.user,
            "Email already registered",
            "Failed to save user",
        )

    async def add_user(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
    ) -> UserProfile:
        parsed_role = Role.parse(role) if role else Role.user
        if parsed_role is None:
            raise InvalidInput("Invalid role")
        return await self._run(
            self._create_user,
            name,
            email,
            password,
            parsed_role,
            "Email already exists",
            "Failed to add user",
        )

    async def authenticate(self, email: str, password: str) -> UserProfile:
        return await self._run(self._authenticate, email, password)

    async def list_users(self) -> List[UserProfile]:
        return await self._run(self._list_users)

    async def update_role(self, email: str, role: Optional[str]) -> UserProfile:
        parsed_role = Role.parse(role) if role else None
        if parsed_role is None:
            raise InvalidInput("Invalid role")
        return await self._run(self._update_role, email, parsed_role)

    async def delete_user(self, email: str, acting_email: str) -> None:
        if email == acting_email:
            raise InvalidInput("Cannot delete your own account")
        await self._run(self._delete_user, email)

    async def ensure_default_admin(
        self,
        email: str,
        password: str,
        name: str = DEFAULT_ADMIN_NAME,
    ) -> bool:
        """Seed one admin account when the user file is missing or empty."""
        return await self._run(self._seed_admin, name, email, password)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, partial(func, *args))

    @contextmanager
    def _storage_guard(self, message: str) -> Iterator[None]:
        try:
            yield
        except StorageError as exc:
            logger.exception(message, extra={"reason": str(exc)})
            raise StorageFailure(message) from exc

    def _create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: Role,
        duplicate_message: str,
        failure_message: str,
    ) -> UserProfile:
        name = (name or "").strip()
        email = email or ""
        if not name or not email or not password:
            raise InvalidInput("All fields are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        record = UserRecord(
            name=name,
            email=email,
            password_hash=hash_password(password, self.rounds),
            role=role,
        )

        def insert(records: List[Record]) -> None:
            if any(row.get("email") == email for row in records):
                raise DuplicateEmail(duplicate_message)
            records.append(record.to_row())

        try:
            with self._storage_guard(failure_message):
                self.store.update(USERS_SCHEMA, insert)
        except DuplicateEmail:
            logger.warning("Email already exists", extra={"email": email})
            raise

        logger.info("User created", extra={"email": email, "role": role})
        return record.profile()

    def _authenticate(self, email: str, password: str) -> UserProfile:
        if not email or not password:
            raise InvalidInput("Email and password are required")

        with self._storage_guard("Server error during login"):
            records = self.store.load(USERS_SCHEMA)

        row = next((row for row in records if row.get("email") == email), None)
        if row is None:
            logger.warning("Login rejected: user not found", extra={"email": email})
            raise InvalidCredentials()

        user = UserRecord.from_row(row)
        if not verify_password(password, user.password_hash):
            logger.warning("Login rejected: invalid password", extra={"email": email})
            raise InvalidCredentials()

        logger.info("Login successful", extra={"email": email, "role": user.role})
        return user.profile()

    def _list_users(self) -> List[UserProfile]:
        with self._storage_guard("Failed to fetch users"):
            records = self.store.load(USERS_SCHEMA)
        return [UserRecord.from_row(row).profile() for row in records]

    def _update_role(self, email: str, role: Role) -> UserProfile:
        def apply(records: List[Record]) -> UserProfile:
            for row in records:
                if row.get("email") == email:
                    row["role"] = role.value
                    return UserRecord.from_row(row).profile()
            raise NotFound("User not found")

        with self._storage_guard("Failed to update user"):
            profile = self.store.update(USERS_SCHEMA, apply)

        logger.info("User role updated", extra={"email": email, "role": role})
        return profile

    def _delete_user(self, email: str) -> None:
        def remove(records: List[Record]) -> None:
            remaining = [row for row in records if row.get("email") != email]
            if len(remaining) == len(records):
                raise NotFound("User not found")
            records[:] = remaining

        with self._storage_guard("Failed to delete user"):
            self.store.update(USERS_SCHEMA, remove)

        logger.info("User deleted", extra={"email": email})

    def _seed_admin(self, name: str, email: str, password: str) -> bool:
        with self._storage_guard("Failed to seed default admin"):
            if self.store.load(USERS_SCHEMA):
                return False

            admin = UserRecord(
                name=name,
                email=email,
                password_hash=hash_password(password, self.rounds),
                role=Role.admin,
            )

            def seed(records: List[Record]) -> bool:
                if records:
                    return False
                records.append(admin.to_row())
                return True

            seeded = self.store.update(USERS_SCHEMA, seed)

        if seeded:
            logger.warning(
                "Seeded default admin account; change its password or set "
                "SEED_DEFAULT_ADMIN=false",
                extra={"email": email},
            )
        return seeded
