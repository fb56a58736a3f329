"""Whitelist and blacklist filtering shared by registries."""

from typing import Generic, List, Optional, Protocol, TypeVar

T = TypeVar("T")


class NamedItem(Protocol):
    name: str


class Library(Generic[T]):
    """
    Base class for registry-based libraries with access control.
    """

    def apply_access_control(
        self,
        items: List[T],
        whitelist: Optional[List[str]] = None,
        blacklist: Optional[List[str]] = None,
    ) -> List[T]:
        """
        Filters a list of named items based on whitelist/blacklist.

        The whitelist wins when both are given. Items are matched on their
        ``name`` attribute.
        """
        if whitelist is not None:
            return [item for item in items if getattr(item, "name", "") in whitelist]

        if blacklist is not None:
            return [
                item for item in items if getattr(item, "name", "") not in blacklist
            ]

        return items
