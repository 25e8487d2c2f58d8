"""Users, permissions and password authentication for client connections."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import bcrypt

__all__ = ["AuthError", "Permission", "User", "AuthManager"]

log = logging.getLogger(__name__)

DEFAULT_COST = 12
ADMIN_USERNAME = "admin"


class AuthError(Exception):
    """Raised when authentication or user management fails."""


class Permission(Enum):
    """What a user may do."""

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"
    CONNECT = "connect"


_ALL_PERMISSIONS = (Permission.ADMIN, Permission.READ, Permission.WRITE, Permission.CONNECT)


@dataclass(frozen=True)
class User:
    """A user account with its password hash and permissions."""

    username: str
    password_hash: str
    permissions: tuple[Permission, ...] = ()


def _hash_password(password: str, rounds: int) -> str:
    try:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("ascii")
    except ValueError as err:
        log.error("Failed to hash password: %s", err)
        return base64.b64encode(password.encode("utf-8")).decode("ascii")


def _verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        pass
    try:
        stored = base64.b64decode(password_hash, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return False
    return password == stored


class AuthManager:
    """Keeps user accounts and checks credentials against them."""

    def __init__(self, rounds: int = DEFAULT_COST) -> None:
        self._rounds = rounds
        self._users: dict[str, User] = {}
        self._default_user: str | None = None

    @classmethod
    def with_admin(cls, admin_password: str) -> AuthManager:
        """A manager holding one ``admin`` user with every permission."""
        manager = cls()
        manager._users[ADMIN_USERNAME] = User(
            username=ADMIN_USERNAME,
            password_hash=_hash_password(admin_password, manager._rounds),
            permissions=_ALL_PERMISSIONS,
        )
        manager._default_user = ADMIN_USERNAME
        return manager

    async def add_user(
        self, username: str, password: str, permissions: Iterable[Permission]
    ) -> None:
        """Add a user; raise AuthError if the name is taken."""
        password_hash = await asyncio.to_thread(_hash_password, password, self._rounds)
        if username in self._users:
            raise AuthError(f"User already exists: {username}")
        self._users[username] = User(username, password_hash, tuple(permissions))

    async def remove_user(self, username: str) -> None:
        """Remove a user; raise AuthError if there is none by that name."""
        if self._users.pop(username, None) is None:
            raise AuthError(f"User not found: {username}")

    async def authenticate(self, username: str, password: str) -> User:
        """The user whose name and password match; AuthError otherwise."""
        user = self._users.get(username)
        if user is None:
            raise AuthError("Invalid username or password")
        if not await asyncio.to_thread(_verify_password, password, user.password_hash):
            raise AuthError("Invalid username or password")
        return user

    async def authenticate_key(self, auth_key: str) -> User:
        """Resolve a handshake auth key to a user.

        An empty key with no users configured yields an all-powerful
        ``default`` user; otherwise the default user, if any, is returned.
        """
        if not auth_key and not self._users:
            return User(username="default", password_hash="", permissions=_ALL_PERMISSIONS)
        if self._default_user is not None:
            user = self._users.get(self._default_user)
            if user is not None:
                return user
        raise AuthError("Invalid authentication key")

    @staticmethod
    def has_permission(user: User, permission: Permission) -> bool:
        """Whether ``user`` holds ``permission`` directly or through ADMIN."""
        return permission in user.permissions or Permission.ADMIN in user.permissions

    async def user_count(self) -> int:
        """Number of users."""
        return len(self._users)

    async def list_users(self) -> list[str]:
        """Names of all users."""
        return list(self._users)