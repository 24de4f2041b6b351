from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote_plus

from .errors import ApiError, DecodeError

UNLIMITED = "unlimited"

DEFAULT_LIST_FIELDS: Mapping[str, str] = {"ips": ",", "alias_pointers": "|", "pointers": "|"}

UNLIMITED_OPTIONS: tuple[str, ...] = (
    "bandwidth",
    "domainptr",
    "ftp",
    "mysql",
    "nemailf",
    "nemailml",
    "nemailr",
    "nemails",
    "nsubdomains",
    "quota",
    "vdomains",
)

_TRUE_VALUES = {"yes", "on", "1"}
_FALSE_VALUES = {"no", "off", "0"}

_ENTITY_RE = re.compile(r"&#([0-9]{2,3});?")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_TAG_RE = re.compile(r"<(script|style)\b.*?</\1>|<[^>]+>", re.IGNORECASE | re.DOTALL)
_WS_RE = re.compile(r"\s+")


def to_bool(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise DecodeError(f"Cannot interpret {value!r} as a boolean")


def to_float_limit(value: object) -> float | None:
    """Parse a limit where `None` or "unlimited" means no limit at all."""
    if value is None or (isinstance(value, str) and value.strip().lower() == UNLIMITED):
        return None
    try:
        return float(str(value).strip())
    except ValueError as e:
        raise DecodeError(f"Cannot interpret {value!r} as a number") from e


def to_int_limit(value: object) -> int | None:
    limit = to_float_limit(value)
    return None if limit is None else int(limit)


def to_float(value: object, *, default: float = 0.0) -> float:
    limit = to_float_limit(value)
    return default if limit is None else limit


def on_off(value: object, default: bool = False) -> str:
    return "ON" if (default if value is None else to_bool(value)) else "OFF"


def process_unlimited_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Encode options for a mutation call.

    Limit keys set to `None` or "unlimited" are sent as the unlimited sentinel
    together with the matching `u<key>=ON` flag. Booleans become ON/OFF and
    lists are joined with commas. Other `None` values are dropped.
    """
    out: dict[str, Any] = {}
    for key, value in options.items():
        if isinstance(value, bool):
            out[key] = on_off(value)
        elif isinstance(value, (list, tuple)):
            out[key] = ",".join(str(v) for v in value)
        elif value is not None:
            out[key] = value
    for key in UNLIMITED_OPTIONS:
        out.pop(f"u{key}", None)
        if key not in options:
            continue
        value = options[key]
        if value is None or (isinstance(value, str) and value.strip().lower() == UNLIMITED):
            out[key] = UNLIMITED
            out[f"u{key}"] = "ON"
    return out


def strip_tags(html: str, limit: int = 200) -> str:
    text = _WS_RE.sub(" ", _TAG_RE.sub(" ", html)).strip()
    if len(text) > limit:
        return text[: limit - 3].rstrip() + "..."
    return text


def _is_error_flag(value: object) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    return str(value).strip().lower() not in {"", "0", "no", "false"}


def parse_query(text: str) -> dict[str, Any]:
    """Parse a URL-encoded `key=value` body.

    Pairs may be separated by `&` or newlines. `key[]` entries, and plain keys
    that occur more than once, are collected into ordered lists.
    """
    unescaped = _ENTITY_RE.sub(lambda m: chr(int(m.group(1))), text)
    out: dict[str, Any] = {}
    for line in unescaped.splitlines():
        for segment in line.split("&"):
            if not segment.strip():
                continue
            if "=" not in segment:
                raise DecodeError(f"Malformed key=value segment: {segment[:60]!r}")
            raw_key, raw_value = segment.split("=", 1)
            try:
                key = unquote_plus(raw_key, errors="strict").strip()
                value = unquote_plus(raw_value, errors="strict")
            except UnicodeDecodeError as e:
                raise DecodeError(f"Invalid UTF-8 escape in segment: {segment[:60]!r}") from e
            if not key:
                raise DecodeError(f"Empty key in segment: {segment[:60]!r}")
            if key.endswith("[]"):
                key = key[:-2]
                existing = out.setdefault(key, [])
                if not isinstance(existing, list):
                    existing = out[key] = [existing]
                existing.append(value)
            elif key in out:
                existing = out[key]
                if not isinstance(existing, list):
                    existing = out[key] = [existing]
                existing.append(value)
            else:
                out[key] = value
    return out


class ResponseCodec:
    """Turns raw DirectAdmin response bodies into sanitized Python values.

    Legacy `CMD_API_*` commands answer with URL-encoded `key=value` pairs,
    the newer `/api/*` endpoints with JSON. Both are detected here. Leaves are
    sanitized: "yes"/"no" become booleans, "unlimited" becomes `None` and
    fields named in `list_fields` are split on their separator.
    """

    def __init__(self, list_fields: Mapping[str, str] = DEFAULT_LIST_FIELDS) -> None:
        self.list_fields = dict(list_fields)

    def decode(
        self,
        body: bytes | str,
        content_type: str | None = None,
        *,
        label: str = "request",
    ) -> Any:
        if isinstance(body, bytes):
            try:
                text = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(f"{label}: response is not valid UTF-8") from e
        else:
            text = body
        stripped = text.strip()
        if self._looks_like_json(stripped, content_type):
            try:
                data: Any = json.loads(stripped) if stripped else {}
            except ValueError as e:
                raise DecodeError(f"{label}: invalid JSON response") from e
        else:
            data = parse_query(stripped)
            if set(data) == {"list"}:
                data = data["list"] if isinstance(data["list"], list) else [data["list"]]

        if isinstance(data, dict):
            self.raise_for_error(data, label=label)
        elif not isinstance(data, list):
            raise DecodeError(f"{label}: unexpected response shape {type(data).__name__}")
        return self.sanitize(data)

    @staticmethod
    def raise_for_error(data: Mapping[str, Any], *, label: str = "request") -> None:
        if not _is_error_flag(data.get("error")):
            return
        details = str(data.get("details") or "").strip()
        text = str(data.get("text") or data.get("message") or "").strip()
        raise ApiError(f"{label} failed: {details} ({text})", details=details, text=text)

    def decode_nested(self, value: object) -> dict[str, Any]:
        """Decode an ampersand-encoded sub-record, eg. one ADDITIONAL_DOMAINS entry."""
        if isinstance(value, Mapping):
            return self.sanitize(dict(value))
        if value is None:
            return {}
        return self.sanitize(parse_query(str(value)))

    def sanitize(self, data: Any, key: str | None = None) -> Any:
        if isinstance(data, dict):
            return {k: self.sanitize(v, str(k)) for k, v in data.items()}
        if isinstance(data, list):
            item_key = None if key in self.list_fields else key
            return [self.sanitize(v, item_key) for v in data]
        if not isinstance(data, str):
            return data
        value = _CONTROL_RE.sub("", data).strip()
        if key is not None and key in self.list_fields:
            return [p for part in value.split(self.list_fields[key]) if (p := part.strip())]
        lowered = value.lower()
        if lowered == "yes":
            return True
        if lowered == "no":
            return False
        if lowered == UNLIMITED:
            return None
        return value

    @staticmethod
    def _looks_like_json(text: str, content_type: str | None) -> bool:
        if content_type and "json" in content_type.lower():
            return True
        return text.startswith(("{", "["))
