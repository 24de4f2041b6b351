from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..configmanager import ConfigManager
from .base import BaseObject

if TYPE_CHECKING:
    from ..context import UserContext
    from .user import User

logger = ConfigManager.get_logger(__name__)


class Database(BaseObject):
    """A MySQL database of `owner`, named without the `<owner>_` prefix."""

    def __init__(self, name: str, owner: User, context: UserContext) -> None:
        super().__init__(name, context)
        self.owner = owner

    @classmethod
    def create(cls, owner: User, name: str, username: str, password: str | None = None) -> Database:
        options: dict[str, Any] = {"action": "create", "name": name}
        if not password:
            options["userlist"] = f"{owner.username}_{username}"
        else:
            options.update({"user": username, "passwd": password, "passwd2": password})
        context = owner.get_self_managed_context()
        context.invoke_api_post("DATABASES", options)
        logger.info("Created database %s_%s", owner.username, name)
        return cls(name, owner, context)

    @property
    def database_name(self) -> str:
        return f"{self.owner.username}_{self.name}"

    def delete(self) -> None:
        self.context.invoke_api_post("DATABASES", {"action": "delete", "select0": self.database_name})
        logger.info("Deleted database %s", self.database_name)
        self.owner.clear_cache()
