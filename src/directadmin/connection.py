from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

import httpx

from .configmanager import DEFAULT_TIMEOUT_S, DEFAULT_VERIFY_TLS, ConfigManager
from .conversion import ResponseCodec, strip_tags
from .errors import (
    ApiError,
    AuthenticationError,
    DecodeError,
    DirectAdminConnectionError,
    UnexpectedContentTypeError,
)

logger = ConfigManager.get_logger(__name__)

DEFAULT_LEGACY_PREFIX = "CMD_API_"
DEFAULT_JSON_PREFIX = "api/"

_REDACTED_HEADERS = {"authorization", "cookie"}


def _normalize_base_url(base_url: str) -> str:
    url = (base_url or "").strip()
    if not url:
        raise ValueError("base_url is required")
    return url.rstrip("/") + "/"


@dataclass(frozen=True)
class Credential:
    """Who opened the session, who it acts as, and with which secret."""

    authenticated_user: str
    acting_user: str
    secret: str
    base_url: str

    @classmethod
    def parse(cls, base_url: str, qualified_username: str, secret: str) -> Credential:
        accounts = [a.strip() for a in (qualified_username or "").split("|")]
        if not accounts[0] or not accounts[-1]:
            raise ValueError("username is required")
        return cls(
            authenticated_user=accounts[0],
            acting_user=accounts[-1],
            secret=secret,
            base_url=_normalize_base_url(base_url),
        )

    @property
    def is_managed(self) -> bool:
        return self.acting_user != self.authenticated_user

    @property
    def wire_username(self) -> str:
        # DirectAdmin accepts "owner|account" under the owner's password.
        if self.is_managed:
            return f"{self.authenticated_user}|{self.acting_user}"
        return self.acting_user

    def login_as(self, username: str) -> Credential:
        if not username or not username.strip():
            raise ValueError("username is required")
        return replace(self, acting_user=username.strip())


class Connection:
    """An authenticated DirectAdmin connection for one account.

    Derived connections created by `login_as` reuse the transport of the
    connection they came from but keep their own credential and cookies.
    """

    def __init__(
        self,
        credential: Credential,
        *,
        verify_tls: bool = DEFAULT_VERIFY_TLS,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.BaseTransport | None = None,
        legacy_prefix: str = DEFAULT_LEGACY_PREFIX,
        json_prefix: str = DEFAULT_JSON_PREFIX,
        codec: ResponseCodec | None = None,
        owns_transport: bool = True,
    ) -> None:
        self.credential = credential
        self.verify_tls = verify_tls
        self.timeout_s = timeout_s
        self.legacy_prefix = legacy_prefix
        self.json_prefix = json_prefix
        self.codec = codec if codec is not None else ResponseCodec()
        self._transport = transport if transport is not None else httpx.HTTPTransport(verify=verify_tls)
        self._owns_transport = owns_transport
        self._derived: dict[str, Connection] = {}
        self._request_seq = 0
        logger.debug(
            "Initializing Connection base_url=%s user=%s managed=%s",
            credential.base_url,
            credential.acting_user,
            credential.is_managed,
        )
        self._client = httpx.Client(
            base_url=credential.base_url,
            timeout=timeout_s,
            transport=self._transport,
            event_hooks={"request": [self._log_request], "response": [self._log_response]},
        )

    @classmethod
    def create(cls, base_url: str, username: str, password: str, **options: Any) -> Connection:
        """Connect with a `user` or `owner|user` qualified username."""
        return cls(Credential.parse(base_url, username, password), **options)

    @property
    def base_url(self) -> str:
        return self.credential.base_url

    @property
    def authenticated_user(self) -> str:
        return self.credential.authenticated_user

    @property
    def username(self) -> str:
        """The acting username."""
        return self.credential.acting_user

    @property
    def is_managed(self) -> bool:
        return self.credential.is_managed

    def login_as(self, username: str) -> Connection:
        """Return a connection acting as `username`. No request is made.

        Derived connections are kept per acting user and shared by every
        connection of the same login, so repeated impersonation reuses them.
        """
        credential = self.credential.login_as(username)
        derived = self._derived.get(credential.acting_user)
        if derived is None:
            derived = Connection(
                credential,
                verify_tls=self.verify_tls,
                timeout_s=self.timeout_s,
                transport=self._transport,
                legacy_prefix=self.legacy_prefix,
                json_prefix=self.json_prefix,
                codec=self.codec,
                owns_transport=False,
            )
            derived._derived = self._derived
            self._derived[credential.acting_user] = derived
        return derived

    def close(self) -> None:
        """Close the shared transport. Only the root connection owns it."""
        if self._owns_transport:
            self._derived.clear()
            self._client.close()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def invoke(
        self,
        method: str,
        command: str,
        *,
        query: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Invoke a legacy `CMD_API_<command>` endpoint."""
        method = method.upper()
        return self._request(
            method,
            f"{self.legacy_prefix}{command}",
            label=f"{method} to {command}",
            params=dict(query) if query else None,
            data=dict(data) if data is not None else None,
        )

    def invoke_json(
        self,
        method: str,
        command: str,
        *,
        query: Mapping[str, Any] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> Any:
        """Invoke a JSON `/api/<command>` endpoint."""
        method = method.upper()
        return self._request(
            method,
            f"{self.json_prefix}{command}",
            label=f"{method} to {command}",
            params=dict(query) if query else None,
            json=dict(json) if json is not None else None,
        )

    def _request(self, method: str, path: str, *, label: str, **kwargs: Any) -> Any:
        try:
            resp = self._client.request(
                method,
                path,
                auth=(self.credential.wire_username, self.credential.secret),
                **kwargs,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DirectAdminConnectionError(f"{method} request to {path} failed: {e}") from e

        content_type = resp.headers.get("content-type", "")
        if resp.status_code in (401, 403):
            logger.warning("Unauthorized status_code=%s for %s %s", resp.status_code, method, path)
            raise AuthenticationError(
                f"Unauthorized ({resp.status_code}) for {method} {path} as {self.credential.wire_username}"
            )
        if content_type.split(";")[0].strip().lower() == "text/html":
            snippet = strip_tags(resp.text)
            raise UnexpectedContentTypeError(
                f"DirectAdmin API returned text/html to {method} {path} containing {snippet!r}",
                snippet=snippet,
            )
        if resp.is_error:
            self._raise_for_status(resp, label=label)
        return self.codec.decode(resp.content, content_type, label=label)

    def _raise_for_status(self, resp: httpx.Response, *, label: str) -> None:
        msg = f"HTTP {resp.status_code} for {resp.request.method} {resp.request.url}"
        try:
            payload = self.codec.decode(resp.content, resp.headers.get("content-type"), label=label)
        except ApiError:
            raise
        except DecodeError as e:
            raise DirectAdminConnectionError(msg) from e
        if isinstance(payload, dict) and payload.get("message"):
            text = str(payload["message"])
            details = str(payload.get("type") or "")
            raise ApiError(f"{label} failed: {details} ({text})", details=details, text=text)
        raise DirectAdminConnectionError(f"{msg}: {payload}")

    def _log_request(self, request: httpx.Request) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        self._request_seq += 1
        request.extensions["directadmin.req_id"] = self._request_seq
        request.extensions["directadmin.start"] = time.perf_counter()
        headers = {k: ("***" if k.lower() in _REDACTED_HEADERS else v) for k, v in request.headers.items()}
        logger.debug(
            "HTTP -> #%s %s %s as=%s headers=%s",
            self._request_seq,
            request.method,
            request.url,
            self.credential.wire_username,
            headers,
        )

    def _log_response(self, response: httpx.Response) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        req = response.request
        start = req.extensions.get("directadmin.start")
        ms: float | None = None
        if isinstance(start, (int, float)):
            ms = (time.perf_counter() - float(start)) * 1000.0
        logger.debug(
            "HTTP <- #%s %s %s status=%s elapsed_ms=%s content_type=%s",
            req.extensions.get("directadmin.req_id"),
            req.method,
            req.url,
            response.status_code,
            f"{ms:.1f}" if ms is not None else None,
            response.headers.get("content-type"),
        )
