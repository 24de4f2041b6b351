from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, TypeVar

from .cache import ObjectCache
from .configmanager import ConfigManager
from .connection import Connection
from .conversion import process_unlimited_options
from .errors import ContextMismatchError
from .models.database import Database
from .models.domain import Domain
from .models.kinds import AccountType
from .models.user import Admin, Reseller, User

logger = ConfigManager.get_logger(__name__)

_CONTEXT_USER = "context_user"

U = TypeVar("U", bound=User)


class UserContext:
    """Role-scoped session handle for a user account.

    Wraps a single `Connection`. The account behind it is loaded on first use
    and kept for the lifetime of the context.
    """

    ACCOUNT_TYPE: ClassVar[AccountType] = AccountType.USER

    def __init__(self, connection: Connection, validate: bool = False) -> None:
        self.connection = connection
        self._cache = ObjectCache()
        if validate:
            actual = self.get_type()
            if actual is not self.ACCOUNT_TYPE:
                raise ContextMismatchError(
                    f"Validation mismatch on context construction: {connection.username!r} is a "
                    f"{actual.value} account, not {self.ACCOUNT_TYPE.value}"
                )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection.credential.wire_username!r})"

    @property
    def username(self) -> str:
        return self.connection.username

    def get_type(self) -> AccountType:
        return self.get_context_user().get_type()

    def get_context_user(self) -> User:
        return self._cache.get_or_load_whole(
            _CONTEXT_USER,
            lambda: User.from_config(self.invoke_api_get("SHOW_USER_CONFIG"), self),
        )

    def invoke_api_get(self, command: str, query: Mapping[str, Any] | None = None) -> Any:
        return self.connection.invoke("GET", command, query=query)

    def invoke_api_post(self, command: str, data: Mapping[str, Any] | None = None) -> Any:
        return self.connection.invoke("POST", command, data=data or {})

    def invoke_json_get(self, command: str, query: Mapping[str, Any] | None = None) -> Any:
        return self.connection.invoke_json("GET", command, query=query)

    def invoke_json_post(self, command: str, json: Mapping[str, Any] | None = None) -> Any:
        return self.connection.invoke_json("POST", command, json=json or {})

    def get_domains(self) -> dict[str, Domain]:
        return self.get_context_user().get_domains()

    def get_domain(self, domain_name: str) -> Domain | None:
        return self.get_context_user().get_domain(domain_name)

    def get_databases(self) -> dict[str, Database]:
        return self.get_context_user().get_databases()


class ResellerContext(UserContext):
    ACCOUNT_TYPE: ClassVar[AccountType] = AccountType.RESELLER

    def impersonate_user(self, username: str, validate: bool = False) -> UserContext:
        """Act as one of this reseller's users without knowing their password."""
        logger.debug("Impersonating user %s as %s", username, self.connection.authenticated_user)
        return UserContext(self.connection.login_as(username), validate)

    def create_user(
        self,
        username: str,
        password: str,
        email: str,
        domain: str,
        ip: str,
        package: str | Mapping[str, Any] | None = None,
    ) -> User:
        """Create a user, either on a named package or with explicit limits."""
        options: dict[str, Any] = {"ip": ip, "domain": domain}
        if isinstance(package, Mapping):
            options.update(process_unlimited_options(package))
        elif package:
            options["package"] = package
        return self._create_account(username, password, email, options, "ACCOUNT_USER", User)

    def delete_account(self, username: str) -> None:
        self.delete_accounts([username])

    def delete_accounts(self, usernames: Iterable[str]) -> None:
        names = list(usernames)
        options: dict[str, Any] = {"confirmed": "Confirm", "delete": "yes", **self._select(names)}
        logger.info("Deleting accounts %s", ", ".join(names))
        self.invoke_api_post("SELECT_USERS", options)

    def suspend_account(self, username: str) -> None:
        self.suspend_accounts([username])

    def unsuspend_account(self, username: str) -> None:
        self.suspend_accounts([username], suspend=False)

    def suspend_accounts(self, usernames: Iterable[str], suspend: bool = True) -> None:
        names = list(usernames)
        action = "Suspend" if suspend else "Unsuspend"
        logger.info("%s accounts %s", action, ", ".join(names))
        self.invoke_api_post("SELECT_USERS", {"suspend": action, **self._select(names)})

    def get_ips(self) -> list[str]:
        return list(self.invoke_api_get("SHOW_RESELLER_IPS"))

    def get_packages(self) -> list[str]:
        return list(self.invoke_api_get("PACKAGES_USER"))

    def get_user(self, username: str) -> User | None:
        return self.get_users().get(username)

    def get_users(self) -> dict[str, User]:
        names = self.invoke_api_get("SHOW_USERS", {"reseller": self.username})
        return {name: User(name, self) for name in names}

    def _create_account(
        self,
        username: str,
        password: str,
        email: str,
        options: Mapping[str, Any],
        command: str,
        entity_type: type[U],
    ) -> U:
        self.invoke_api_post(
            command,
            {
                **options,
                "action": "create",
                "add": "Submit",
                "email": email,
                "passwd": password,
                "passwd2": password,
                "username": username,
            },
        )
        logger.info("Created %s account %s", entity_type.__name__.lower(), username)
        return entity_type(username, self)

    @staticmethod
    def _select(usernames: Iterable[str]) -> dict[str, str]:
        return {f"select{idx}": name for idx, name in enumerate(usernames)}


class AdminContext(ResellerContext):
    ACCOUNT_TYPE: ClassVar[AccountType] = AccountType.ADMIN

    def impersonate_reseller(self, username: str, validate: bool = False) -> ResellerContext:
        logger.debug("Impersonating reseller %s as %s", username, self.connection.authenticated_user)
        return ResellerContext(self.connection.login_as(username), validate)

    def create_admin(self, username: str, password: str, email: str) -> Admin:
        return self._create_account(username, password, email, {}, "ACCOUNT_ADMIN", Admin)

    def create_reseller(
        self,
        username: str,
        password: str,
        email: str,
        domain: str,
        package: str | Mapping[str, Any] | None = None,
        ip: str = "shared",
    ) -> Reseller:
        options: dict[str, Any] = {"domain": domain, "ip": ip}
        if isinstance(package, Mapping):
            options.update(process_unlimited_options(package))
        elif package:
            options["package"] = package
        return self._create_account(username, password, email, options, "ACCOUNT_RESELLER", Reseller)

    def get_admins(self) -> dict[str, Admin]:
        return {name: Admin(name, self) for name in self.invoke_api_get("SHOW_ADMINS")}

    def get_resellers(self) -> dict[str, Reseller]:
        return {name: Reseller(name, self) for name in self.invoke_api_get("SHOW_RESELLERS")}

    def get_reseller(self, username: str) -> Reseller | None:
        return self.get_resellers().get(username)

    def get_all_users(self) -> dict[str, User]:
        return {name: User(name, self) for name in self.invoke_api_get("SHOW_ALL_USERS")}

    def get_all_accounts(self) -> dict[str, User]:
        accounts: dict[str, User] = {**self.get_all_users(), **self.get_resellers(), **self.get_admins()}
        return dict(sorted(accounts.items()))

    def get_version(self) -> dict[str, Any]:
        return self.invoke_json_get("version")
