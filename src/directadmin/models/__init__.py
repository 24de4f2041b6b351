from .base import BaseObject
from .database import Database
from .domain import Domain
from .kinds import AccountType, CacheCategory
from .user import Admin, Reseller, User

__all__ = [
    "AccountType",
    "Admin",
    "BaseObject",
    "CacheCategory",
    "Database",
    "Domain",
    "Reseller",
    "User",
]
