from __future__ import annotations

import base64
import os
from collections.abc import Callable, Generator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode

import httpx
import pytest

from directadmin import Connection
from directadmin.configmanager import ConfigManager

BASE_URL = "https://da.example.invalid:2222"
SECRET = "s3cret"

ACCOUNTS: dict[str, dict[str, str]] = {
    "admin": {
        "username": "admin",
        "usertype": "admin",
        "creator": "root",
        "email": "admin@example.invalid",
        "bandwidth": "unlimited",
        "quota": "unlimited",
        "vdomains": "unlimited",
        "mysql": "unlimited",
        "suspended": "no",
        "ssl": "yes",
        "php": "yes",
        "cgi": "yes",
        "domain": "admin.example.invalid",
    },
    "reseller1": {
        "username": "reseller1",
        "usertype": "reseller",
        "creator": "admin",
        "email": "reseller1@example.invalid",
        "bandwidth": "10240",
        "quota": "unlimited",
        "vdomains": "10",
        "mysql": "10",
        "suspended": "no",
        "ssl": "yes",
        "php": "yes",
        "cgi": "no",
        "domain": "reseller1.example.invalid",
    },
    "user1": {
        "username": "user1",
        "usertype": "user",
        "creator": "reseller1",
        "email": "user1@example.invalid",
        "bandwidth": "1024",
        "quota": "500",
        "vdomains": "2",
        "mysql": "0",
        "suspended": "no",
        "ssl": "yes",
        "php": "no",
        "cgi": "yes",
        "domain": "user1.example.invalid",
        "ips": "192.0.2.10,192.0.2.11",
    },
}


def kv(data: Mapping[str, Any]) -> str:
    pairs: list[tuple[str, str]] = []
    for key, value in data.items():
        if isinstance(value, list):
            pairs.extend((f"{key}[]", str(v)) for v in value)
        else:
            pairs.append((key, str(value)))
    return urlencode(pairs)


def da_list(items: Sequence[str]) -> str:
    return urlencode([("list[]", item) for item in items])


def text_response(body: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=body, headers={"content-type": "text/plain"})


def ok_response(text: str = "Saved") -> httpx.Response:
    return text_response(kv({"error": "0", "text": text}))


def error_response(text: str, details: str = "") -> httpx.Response:
    return text_response(kv({"error": "1", "text": text, "details": details}))


@dataclass
class Call:
    method: str
    path: str
    username: str
    query: dict[str, str]
    form: dict[str, str]

    @property
    def acting_user(self) -> str:
        return self.username.split("|")[-1]


class FakePanel:
    """In-memory DirectAdmin server speaking the legacy and JSON APIs."""

    def __init__(self) -> None:
        self.accounts = {name: dict(config) for name, config in ACCOUNTS.items()}
        self.usage: dict[str, dict[str, str]] = {
            "user1": {"bandwidth": "12.5", "quota": "100.25", "vdomains": "1", "mysql": "1"},
        }
        self.domains: dict[str, dict[str, dict[str, str]]] = {
            "user1": {
                "user1.example.invalid": {
                    "active": "yes",
                    "bandwidth": "3.5 / 1024",
                    "quota": "20",
                    "ssl": "yes",
                    "php": "no",
                    "cgi": "yes",
                    "suspended": "no",
                    "username": "user1",
                    "alias_pointers": "",
                    "pointers": "www2.user1.example.invalid|old.user1.example.invalid",
                },
            },
        }
        self.databases: dict[str, list[str]] = {"user1": ["user1_main"]}
        self.calls: list[Call] = []
        self.routes: dict[str, Callable[[Call], httpx.Response]] = {
            "CMD_API_SHOW_USER_CONFIG": self._show_user_config,
            "CMD_API_SHOW_USER_USAGE": self._show_user_usage,
            "CMD_API_MODIFY_USER": self._modify_user,
            "CMD_API_SHOW_USERS": self._show_users,
            "CMD_API_SHOW_RESELLERS": lambda call: self._list_type("reseller"),
            "CMD_API_SHOW_ADMINS": lambda call: self._list_type("admin"),
            "CMD_API_SHOW_ALL_USERS": lambda call: self._list_type("user"),
            "CMD_API_ADDITIONAL_DOMAINS": self._additional_domains,
            "CMD_API_DOMAIN": self._domain,
            "CMD_API_DATABASES": self._databases,
            "CMD_API_CRON_JOBS": self._cron_jobs,
            "CMD_API_SELECT_USERS": lambda call: ok_response(),
            "CMD_API_ACCOUNT_USER": self._account_create,
            "CMD_API_ACCOUNT_RESELLER": self._account_create,
            "CMD_API_ACCOUNT_ADMIN": self._account_create,
            "CMD_API_USER_PASSWD": lambda call: ok_response("Password changed"),
            "CMD_API_SHOW_RESELLER_IPS": lambda call: text_response(da_list(["192.0.2.10", "192.0.2.11"])),
            "CMD_API_PACKAGES_USER": lambda call: text_response(da_list(["basic", "pro"])),
            "api/version": lambda call: httpx.Response(200, json={"version": "1.680", "build": "abc123"}),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("authorization", "")
        username = ""
        if auth.lower().startswith("basic "):
            username = base64.b64decode(auth[6:]).decode("utf-8").split(":", 1)[0]
        body = request.content.decode("utf-8") if request.content else ""
        call = Call(
            method=request.method,
            path=request.url.path.lstrip("/"),
            username=username,
            query=dict(request.url.params),
            form=dict(parse_qsl(body, keep_blank_values=True)),
        )
        self.calls.append(call)
        route = self.routes.get(call.path)
        if route is None:
            return error_response("Unknown command", call.path)
        return route(call)

    def count(self, path: str, method: str | None = None) -> int:
        return sum(1 for c in self.calls if c.path == path and (method is None or c.method == method))

    def last(self, path: str) -> Call:
        return [c for c in self.calls if c.path == path][-1]

    def _show_user_config(self, call: Call) -> httpx.Response:
        name = call.query.get("user") or call.acting_user
        if name not in self.accounts:
            return error_response("Unable to show user", f"{name} does not exist")
        return text_response(kv(self.accounts[name]))

    def _show_user_usage(self, call: Call) -> httpx.Response:
        return text_response(kv(self.usage.get(call.query.get("user", ""), {})))

    def _modify_user(self, call: Call) -> httpx.Response:
        form = dict(call.form)
        name = form.pop("user")
        form.pop("action", None)
        for key, value in list(form.items()):
            if key.startswith("u") and value == "ON" and key[1:] in form:
                form[key[1:]] = "unlimited"
                del form[key]
        self.accounts[name].update(form)
        return ok_response()

    def _show_users(self, call: Call) -> httpx.Response:
        reseller = call.query.get("reseller", call.acting_user)
        return text_response(da_list([n for n, c in self.accounts.items() if c["creator"] == reseller]))

    def _list_type(self, usertype: str) -> httpx.Response:
        return text_response(da_list([n for n, c in self.accounts.items() if c["usertype"] == usertype]))

    def _additional_domains(self, call: Call) -> httpx.Response:
        domains = self.domains.get(call.acting_user, {})
        return text_response(kv({name: urlencode(config) for name, config in domains.items()}))

    def _domain(self, call: Call) -> httpx.Response:
        owned = self.domains.setdefault(call.acting_user, {})
        if call.form.get("action") == "create":
            owned[call.form["domain"]] = {"active": "yes", "username": call.acting_user}
        elif call.form.get("delete"):
            owned.pop(call.form["select0"], None)
        return ok_response()

    def _databases(self, call: Call) -> httpx.Response:
        owned = self.databases.setdefault(call.acting_user, [])
        if call.method == "GET":
            return text_response(da_list(owned))
        if call.form.get("action") == "create":
            owned.append(f"{call.acting_user}_{call.form['name']}")
        elif call.form.get("action") == "delete":
            owned.remove(call.form["select0"])
        return ok_response()

    def _cron_jobs(self, call: Call) -> httpx.Response:
        if call.form.get("action"):
            return ok_response()
        return text_response(kv({"000": "*/5 * * * * /usr/bin/php cron.php", "MAILTO": "", "PATH": "/usr/bin"}))

    def _account_create(self, call: Call) -> httpx.Response:
        if call.form.get("username") in self.accounts:
            return error_response("Unable to create account", "That username already exists")
        return ok_response("Account created")


def pytest_configure(config: pytest.Config) -> None:
    # Optional: load env vars for integration tests from a specified dotenv file.
    # Unit tests do not depend on these.
    env_file = os.getenv("DIRECTADMIN_ENV_FILE")
    if env_file:
        ConfigManager.load_dotenv(env_file)
    if os.getenv("DIRECTADMIN_LOG_LEVEL"):
        ConfigManager.configure_logging()


@pytest.fixture
def panel() -> FakePanel:
    return FakePanel()


@pytest.fixture
def transport(panel: FakePanel) -> httpx.MockTransport:
    return httpx.MockTransport(panel.handler)


@pytest.fixture
def connect(transport: httpx.MockTransport) -> Generator[Callable[[str], Connection], None, None]:
    opened: list[Connection] = []

    def _connect(username: str) -> Connection:
        conn = Connection.create(BASE_URL, username, SECRET, transport=transport)
        opened.append(conn)
        return conn

    yield _connect
    for conn in opened:
        conn.close()
