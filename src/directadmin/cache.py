from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

T = TypeVar("T")


class ObjectCache:
    """Lazily loaded, per-category cache owned by a single entity.

    Each category is filled by its thunk at most once until invalidated. A
    thunk that raises stores nothing. Not thread safe.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def __contains__(self, category: object) -> bool:
        return category in self._data

    def set(self, category: str, blob: Any) -> None:
        self._data[category] = blob

    def get_or_load_whole(self, category: str, thunk: Callable[[], T]) -> T:
        if category not in self._data:
            self._data[category] = thunk()
        return self._data[category]

    def get_or_load(
        self,
        category: str,
        key: str,
        thunk: Callable[[], Mapping[str, Any]],
        default: Any = None,
    ) -> Any:
        blob = self.get_or_load_whole(category, thunk)
        if not blob:
            return default
        if not isinstance(blob, Mapping):
            raise TypeError(f"Cache category {category!r} holds {type(blob).__name__}, not a mapping")
        return blob.get(key, default)

    def invalidate(self, category: str | None = None) -> None:
        if category is None:
            self._data.clear()
        else:
            self._data.pop(category, None)
