from __future__ import annotations

from typing import Any

from .cache import ObjectCache
from .connection import Connection, Credential
from .context import AdminContext, ResellerContext, UserContext
from .conversion import ResponseCodec
from .errors import (
    ApiError,
    AuthenticationError,
    ContextMismatchError,
    DecodeError,
    DirectAdminConnectionError,
    DirectAdminError,
    InsufficientPrivilegeError,
    UnexpectedContentTypeError,
    UnknownUserTypeError,
)
from .models import AccountType, Admin, Database, Domain, Reseller, User

__all__ = [
    "AccountType",
    "Admin",
    "AdminContext",
    "ApiError",
    "AuthenticationError",
    "Connection",
    "ContextMismatchError",
    "Credential",
    "Database",
    "DecodeError",
    "DirectAdminConnectionError",
    "DirectAdminError",
    "Domain",
    "InsufficientPrivilegeError",
    "ObjectCache",
    "Reseller",
    "ResellerContext",
    "ResponseCodec",
    "UnexpectedContentTypeError",
    "UnknownUserTypeError",
    "User",
    "UserContext",
    "connect_admin",
    "connect_reseller",
    "connect_user",
]


def connect_admin(url: str, username: str, password: str, validate: bool = False, **options: Any) -> AdminContext:
    return AdminContext(Connection.create(url, username, password, **options), validate)


def connect_reseller(
    url: str, username: str, password: str, validate: bool = False, **options: Any
) -> ResellerContext:
    return ResellerContext(Connection.create(url, username, password, **options), validate)


def connect_user(url: str, username: str, password: str, validate: bool = False, **options: Any) -> UserContext:
    return UserContext(Connection.create(url, username, password, **options), validate)
