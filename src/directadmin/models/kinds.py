from __future__ import annotations

from enum import Enum

from ..errors import UnknownUserTypeError


class AccountType(str, Enum):
    ADMIN = "admin"
    RESELLER = "reseller"
    USER = "user"

    @property
    def level(self) -> int:
        return _LEVELS[self]

    @staticmethod
    def from_value(value: object) -> AccountType:
        """Map a `usertype` value onto a known account type, or fail."""
        try:
            return AccountType(str(value).strip().lower())
        except ValueError:
            raise UnknownUserTypeError(f"Unknown user type {value!r}") from None


_LEVELS = {
    AccountType.USER: 0,
    AccountType.RESELLER: 1,
    AccountType.ADMIN: 2,
}


class CacheCategory(str, Enum):
    CONFIG = "config"
    USAGE = "usage"
    DATABASES = "databases"
    DOMAINS = "domains"
