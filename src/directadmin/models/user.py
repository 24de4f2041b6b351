from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, cast

from ..configmanager import ConfigManager
from ..conversion import UNLIMITED, on_off, process_unlimited_options, to_bool, to_float, to_float_limit, to_int_limit
from ..errors import DirectAdminError, InsufficientPrivilegeError
from .base import BaseObject
from .database import Database
from .domain import Domain
from .kinds import AccountType, CacheCategory

if TYPE_CHECKING:
    from ..context import AdminContext, ResellerContext, UserContext

logger = ConfigManager.get_logger(__name__)


class User(BaseObject):
    """A DirectAdmin account.

    Config and usage are fetched lazily, one request per category, and
    dropped from the cache after every change made through this object.
    """

    ACCOUNT_TYPE: ClassVar[AccountType] = AccountType.USER

    def __init__(self, name: str, context: UserContext, config: Mapping[str, Any] | None = None) -> None:
        super().__init__(name, context)
        if config is not None:
            self.cache.set(CacheCategory.CONFIG, dict(config))

    @staticmethod
    def from_config(config: Mapping[str, Any], context: UserContext) -> User:
        """Construct the correct entity type from a SHOW_USER_CONFIG response."""
        account_type = AccountType.from_value(config.get("usertype"))
        name = str(config.get("username") or context.username)
        entity_type: type[User] = _ENTITY_TYPES[account_type]
        return entity_type(name, context, config)

    @property
    def username(self) -> str:
        return self.name

    @property
    def email(self) -> str | None:
        return self.get_config("email")

    def get_type(self) -> AccountType:
        return AccountType.from_value(self.get_config("usertype"))

    def get_config(self, key: str) -> Any:
        return self.cache.get_or_load(CacheCategory.CONFIG, key, self._load_config)

    def get_usage(self, key: str) -> Any:
        return self.cache.get_or_load(
            CacheCategory.USAGE,
            key,
            lambda: self.context.invoke_api_get("SHOW_USER_USAGE", {"user": self.username}),
        )

    def get_bandwidth_limit(self) -> float | None:
        """Limit in megabytes, or None for unlimited."""
        return to_float_limit(self.get_config("bandwidth"))

    def get_bandwidth_usage(self) -> float:
        return to_float(self.get_usage("bandwidth"))

    def get_database_limit(self) -> int | None:
        return to_int_limit(self.get_config("mysql"))

    def get_database_usage(self) -> int:
        return int(to_float(self.get_usage("mysql")))

    def get_disk_limit(self) -> float | None:
        """Limit in megabytes, or None for unlimited."""
        return to_float_limit(self.get_config("quota"))

    def get_disk_usage(self) -> float:
        return to_float(self.get_usage("quota"))

    def get_domain_limit(self) -> int | None:
        return to_int_limit(self.get_config("vdomains"))

    def get_domain_usage(self) -> int:
        return int(to_float(self.get_usage("vdomains")))

    def is_suspended(self) -> bool:
        return to_bool(self.get_config("suspended"))

    def has_cgi(self) -> bool:
        return to_bool(self.get_config("cgi"))

    def has_php(self) -> bool:
        return to_bool(self.get_config("php"))

    def has_ssl(self) -> bool:
        return to_bool(self.get_config("ssl"))

    def modify_config(self, new_config: Mapping[str, Any]) -> None:
        """Change account settings, see CMD_API_MODIFY_USER for the keys.

        Limits set to None or "unlimited" are sent as unlimited.
        """
        current = self.cache.get_or_load_whole(CacheCategory.CONFIG, self._load_config)
        # Decoded config holds None for every unlimited field, limit key or not.
        current = {k: UNLIMITED if v is None else v for k, v in current.items()}
        payload = process_unlimited_options({**current, **new_config})
        payload.update({"action": "customize", "user": self.username})
        self.context.invoke_api_post("MODIFY_USER", payload)
        logger.info("Modified config of %s (%s)", self.username, ", ".join(sorted(new_config)))
        self.clear_cache()

    def set_allow_catchall(self, value: bool) -> None:
        self.modify_config({"catchall": on_off(value)})

    def set_bandwidth_limit(self, value: float | None) -> None:
        self.modify_config({"bandwidth": None if value is None else float(value)})

    def set_disk_limit(self, value: float | None) -> None:
        self.modify_config({"quota": None if value is None else float(value)})

    def set_domain_limit(self, value: int | None) -> None:
        self.modify_config({"vdomains": None if value is None else int(value)})

    def get_cronjobs(self) -> dict[str, Any]:
        """Cron jobs by id, plus the MAILTO and PATH settings."""
        return self.get_self_managed_context().invoke_api_post("CRON_JOBS")

    def add_cronjob(
        self,
        minute: str,
        hour: str,
        dayofmonth: str,
        month: str,
        dayofweek: str,
        command: str,
    ) -> dict[str, Any]:
        return self.get_self_managed_context().invoke_api_post(
            "CRON_JOBS",
            {
                "action": "create",
                "minute": minute,
                "hour": hour,
                "dayofmonth": dayofmonth,
                "month": month,
                "dayofweek": dayofweek,
                "command": command,
            },
        )

    def delete_cronjob(self, cron_id: str) -> dict[str, Any]:
        return self.get_self_managed_context().invoke_api_post(
            "CRON_JOBS",
            {"action": "delete", "select0": cron_id},
        )

    def set_cronjobs_mailto(self, email_address: str) -> dict[str, Any]:
        return self.get_self_managed_context().invoke_api_post(
            "CRON_JOBS",
            {"action": "saveemail", "email": email_address},
        )

    def get_databases(self) -> dict[str, Database]:
        return self.cache.get_or_load_whole(CacheCategory.DATABASES, self._load_databases)

    def create_database(self, name: str, username: str, password: str | None = None) -> Database:
        """Create a database; names are given without the `<user>_` prefix.

        Without a password the database user must already exist.
        """
        db = Database.create(self, name, username, password)
        self.clear_cache()
        return db

    def get_default_domain(self) -> Domain | None:
        name = self.get_config("domain")
        if not name:
            return None
        return self.get_domain(str(name))

    def get_domain(self, domain_name: str) -> Domain | None:
        return self.get_domains().get(domain_name)

    def get_domains(self) -> dict[str, Domain]:
        return self.cache.get_or_load_whole(CacheCategory.DOMAINS, self._load_domains)

    def create_domain(
        self,
        domain_name: str,
        bandwidth_limit: float | None = None,
        disk_limit: float | None = None,
        ssl: bool | None = None,
        php: bool | None = None,
        cgi: bool | None = None,
    ) -> Domain:
        """Create a domain. Limits left as None are shared with the account."""
        domain = Domain.create(
            self,
            domain_name,
            bandwidth_limit=bandwidth_limit,
            disk_limit=disk_limit,
            ssl=ssl,
            php=php,
            cgi=cgi,
        )
        self.clear_cache()
        return domain

    def impersonate(self, validate: bool = False) -> UserContext:
        """Return a context acting as this account, owned by the current one."""
        required = self.ACCOUNT_TYPE.level + 1
        if self.context.ACCOUNT_TYPE.level < required:
            raise InsufficientPrivilegeError(
                f"A {self.context.ACCOUNT_TYPE.value} context cannot impersonate {self.ACCOUNT_TYPE.value} {self.username}"
            )
        return self._derive_context(validate)

    def is_self_managed(self) -> bool:
        return self.username == self.context.username

    def get_self_managed_context(self) -> UserContext:
        return self.context if self.is_self_managed() else self.impersonate()

    def get_self_managed_user(self, validate: bool = False) -> User:
        return self if self.is_self_managed() else self.impersonate(validate).get_context_user()

    def _derive_context(self, validate: bool) -> UserContext:
        return cast("ResellerContext", self.context).impersonate_user(self.username, validate)

    def _load_config(self) -> dict[str, Any]:
        return self.context.invoke_api_get("SHOW_USER_CONFIG", {"user": self.username})

    def _load_databases(self) -> dict[str, Database]:
        context = self.get_self_managed_context()
        databases: dict[str, Database] = {}
        for full_name in context.invoke_api_get("DATABASES"):
            owner, _, name = str(full_name).partition("_")
            if owner != self.username or not name:
                raise DirectAdminError(f"Username incorrect on database {full_name}")
            databases[name] = Database(name, self, context)
        return databases

    def _load_domains(self) -> dict[str, Domain]:
        context = self.get_self_managed_context()
        raw = context.invoke_api_get("ADDITIONAL_DOMAINS")
        return {name: Domain(name, context, config, self) for name, config in dict(raw).items()}


class Reseller(User):
    ACCOUNT_TYPE: ClassVar[AccountType] = AccountType.RESELLER

    def change_user_password(self, username: str, password: str) -> dict[str, Any]:
        logger.info("Changing password of %s", username)
        return self.context.invoke_api_post(
            "USER_PASSWD",
            {"username": username, "passwd": password, "passwd2": password},
        )

    def get_user(self, username: str) -> User | None:
        return self.get_users().get(username)

    def get_users(self) -> dict[str, User]:
        names = self.context.invoke_api_get("SHOW_USERS", {"reseller": self.username})
        return {name: User(name, self.context) for name in names}

    def impersonate(self, validate: bool = False) -> ResellerContext:
        return cast("ResellerContext", super().impersonate(validate))

    def _derive_context(self, validate: bool) -> UserContext:
        return cast("AdminContext", self.context).impersonate_reseller(self.username, validate)


class Admin(Reseller):
    ACCOUNT_TYPE: ClassVar[AccountType] = AccountType.ADMIN


_ENTITY_TYPES: dict[AccountType, type[User]] = {
    AccountType.USER: User,
    AccountType.RESELLER: Reseller,
    AccountType.ADMIN: Admin,
}
