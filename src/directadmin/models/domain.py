from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..configmanager import ConfigManager
from ..conversion import on_off, to_bool, to_float, to_float_limit
from .base import BaseObject
from .kinds import CacheCategory

if TYPE_CHECKING:
    from ..context import UserContext
    from .user import User

logger = ConfigManager.get_logger(__name__)


def _split_pair(value: object) -> tuple[str, str | None]:
    # Bandwidth and quota come as "<used>" or "<used> / <limit>".
    if value is None:
        return "0", None
    used, sep, limit = str(value).partition("/")
    return used.strip() or "0", (limit.strip() or None) if sep else None


class Domain(BaseObject):
    """A domain of `owner`, or of the context user when no owner is given.

    `config` is one entry of ADDITIONAL_DOMAINS, either still URL-encoded or
    already decoded.
    """

    def __init__(
        self,
        name: str,
        context: UserContext,
        config: str | Mapping[str, Any] | None = None,
        owner: User | None = None,
    ) -> None:
        super().__init__(name, context)
        self._owner = owner
        if config is not None:
            self.cache.set(CacheCategory.CONFIG, context.connection.codec.decode_nested(config))

    @classmethod
    def create(
        cls,
        owner: User,
        domain_name: str,
        *,
        bandwidth_limit: float | None = None,
        disk_limit: float | None = None,
        ssl: bool | None = None,
        php: bool | None = None,
        cgi: bool | None = None,
    ) -> Domain:
        options: dict[str, Any] = {
            "action": "create",
            "domain": domain_name,
            "ssl": on_off(ssl, owner.has_ssl()),
            "php": on_off(php, owner.has_php()),
            "cgi": on_off(cgi, owner.has_cgi()),
        }
        if bandwidth_limit is not None:
            options["bandwidth"] = float(bandwidth_limit)
        if disk_limit is not None:
            options["quota"] = float(disk_limit)
        context = owner.get_self_managed_context()
        context.invoke_api_post("DOMAIN", options)
        logger.info("Created domain %s for %s", domain_name, owner.username)
        config = {
            "username": owner.username,
            "bandwidth": f"0 / {'unlimited' if bandwidth_limit is None else float(bandwidth_limit)}",
            "quota": "0",
            "ssl": options["ssl"] == "ON",
            "php": options["php"] == "ON",
            "cgi": options["cgi"] == "ON",
            "suspended": False,
            "active": True,
        }
        return cls(domain_name, context, config, owner)

    @property
    def domain_name(self) -> str:
        return self.name

    @property
    def owner(self) -> User:
        return self._owner if self._owner is not None else self.context.get_context_user()

    def get_config(self, key: str) -> Any:
        return self.cache.get_or_load(CacheCategory.CONFIG, key, self._load_config)

    def get_owner_name(self) -> str:
        return str(self.get_config("username") or self.context.username)

    def get_bandwidth_used(self) -> float:
        return to_float(_split_pair(self.get_config("bandwidth"))[0])

    def get_bandwidth_limit(self) -> float | None:
        return to_float_limit(_split_pair(self.get_config("bandwidth"))[1])

    def get_disk_usage(self) -> float:
        return to_float(_split_pair(self.get_config("quota"))[0])

    def get_aliases(self) -> list[str]:
        return list(self.get_config("alias_pointers") or [])

    def get_pointers(self) -> list[str]:
        return list(self.get_config("pointers") or [])

    def is_active(self) -> bool:
        return to_bool(self.get_config("active"))

    def is_suspended(self) -> bool:
        return to_bool(self.get_config("suspended"))

    def has_cgi(self) -> bool:
        return to_bool(self.get_config("cgi"))

    def has_php(self) -> bool:
        return to_bool(self.get_config("php"))

    def has_ssl(self) -> bool:
        return to_bool(self.get_config("ssl"))

    def delete(self) -> None:
        self.context.invoke_api_post(
            "DOMAIN",
            {"delete": "yes", "confirmed": "yes", "select0": self.domain_name},
        )
        logger.info("Deleted domain %s", self.domain_name)
        self.owner.clear_cache()
        self.clear_cache()

    def _load_config(self) -> dict[str, Any]:
        raw = self.context.invoke_api_get("ADDITIONAL_DOMAINS")
        return self.context.connection.codec.decode_nested(dict(raw).get(self.name))
