from __future__ import annotations

from typing import TYPE_CHECKING

from ..cache import ObjectCache

if TYPE_CHECKING:
    from ..context import UserContext


class BaseObject:
    """A named server-side object, read and modified through its context."""

    def __init__(self, name: str, context: UserContext) -> None:
        self.name = name
        self.context = context
        self.cache = ObjectCache()

    def clear_cache(self) -> None:
        self.cache.invalidate()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
