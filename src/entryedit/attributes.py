"""Custom key/value attributes of an entry."""

from dataclasses import dataclass
from typing import Dict, Iterator, List

# Standard fields live on the entry itself and cannot be custom attributes
RESERVED_KEYS = frozenset({"Title", "UserName", "Password", "URL", "Notes"})


@dataclass(frozen=True)
class Attribute:
    """A single attribute value with its protection flag."""

    value: str = ""
    protected: bool = False


class EntryAttributes:
    """Ordered mapping of attribute name to value and protection flag.

    Names are unique and case-sensitive. Iteration follows insertion order.
    """

    def __init__(self) -> None:
        self._items: Dict[str, Attribute] = {}

    @staticmethod
    def is_reserved(name: str) -> bool:
        """Check whether a name belongs to a standard entry field."""
        return name in RESERVED_KEYS

    def _check_name(self, name: str) -> None:
        if not name:
            raise ValueError("Attribute name cannot be empty.")
        if self.is_reserved(name):
            raise ValueError(f"'{name}' is a reserved field name.")

    def set(self, name: str, value: str, protected: bool = False) -> None:
        """Insert or update an attribute."""
        self._check_name(name)
        self._items[name] = Attribute(value=value, protected=protected)

    def remove(self, name: str) -> None:
        """Remove an attribute; unknown names are ignored."""
        self._items.pop(name, None)

    def rename(self, old_name: str, new_name: str) -> None:
        """Rename an attribute in place, keeping its position and flag."""
        if old_name == new_name or old_name not in self._items:
            return
        self._check_name(new_name)
        if new_name in self._items:
            raise ValueError(f"Attribute '{new_name}' already exists.")
        self._items = {
            (new_name if key == old_name else key): item
            for key, item in self._items.items()
        }

    def value(self, name: str) -> str:
        item = self._items.get(name)
        return item.value if item else ""

    def is_protected(self, name: str) -> bool:
        item = self._items.get(name)
        return item.protected if item else False

    def keys(self) -> List[str]:
        return list(self._items)

    def unique_name(self, base: str) -> str:
        """Return ``base`` or the first ``base N`` not already in use."""
        name = base
        i = 1
        while name in self._items:
            name = f"{base} {i}"
            i += 1
        return name

    def copy_from(self, other: "EntryAttributes") -> None:
        """Replace all attributes with the contents of ``other``."""
        if other is self:
            return
        self._items = dict(other._items)

    def clear(self) -> None:
        self._items.clear()

    def to_dict(self) -> dict:
        return {
            name: {"value": item.value, "protected": item.protected}
            for name, item in self._items.items()
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EntryAttributes":
        attributes = cls()
        for name, item in data.items():
            attributes.set(name, item.get("value", ""), item.get("protected", False))
        return attributes

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntryAttributes):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"EntryAttributes({self.keys()!r})"
