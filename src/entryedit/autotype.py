"""Auto-type window associations and sequence validation."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

# Zero or more {KEY} or {KEY COUNT} tokens
SEQUENCE_SYNTAX = re.compile(r"(\{[A-Z]*(\s[0-9]*)?\})*", re.IGNORECASE)
# Three digits is a key-repeat count in the hundreds, almost certainly a typo
HIGH_REPETITION = re.compile(r"[0-9]{3,}")


@dataclass(frozen=True)
class Association:
    """Maps a window title pattern to a sequence override.

    An empty ``sequence`` means the entry's default sequence is used.
    """

    window: str = ""
    sequence: str = ""

    def is_empty(self) -> bool:
        return not self.window


class SequenceWarning(str, Enum):
    """Advisory problems detected in an auto-type sequence."""

    SYNTAX = "syntax"
    REPETITION = "repetition"


def validate_sequence(sequence: str) -> List[SequenceWarning]:
    """Check an auto-type sequence and return any advisory warnings."""
    warnings = []
    if not SEQUENCE_SYNTAX.fullmatch(sequence):
        warnings.append(SequenceWarning.SYNTAX)
    if HIGH_REPETITION.search(sequence):
        warnings.append(SequenceWarning.REPETITION)
    return warnings


class AutoTypeAssociations:
    """Ordered list of associations; the first matching window wins."""

    def __init__(self, associations: Optional[List[Association]] = None) -> None:
        self._items: List[Association] = list(associations or [])

    def add(self, association: Optional[Association] = None) -> int:
        """Append an association (empty by default) and return its index."""
        self._items.append(association or Association())
        return len(self._items) - 1

    def get(self, index: int) -> Association:
        return self._items[index]

    def update(self, index: int, association: Association) -> None:
        """Replace the association at ``index``."""
        self._items[index] = association

    def remove(self, index: int) -> None:
        del self._items[index]

    def remove_empty(self) -> None:
        """Drop every association without a window pattern."""
        self._items = [a for a in self._items if not a.is_empty()]

    def copy_from(self, other: "AutoTypeAssociations") -> None:
        if other is self:
            return
        self._items = list(other._items)

    def clear(self) -> None:
        self._items.clear()

    def to_list(self) -> List[dict]:
        return [{"window": a.window, "sequence": a.sequence} for a in self._items]

    @classmethod
    def from_list(cls, data: List[dict]) -> "AutoTypeAssociations":
        return cls(
            [Association(item.get("window", ""), item.get("sequence", "")) for item in data]
        )

    def __iter__(self) -> Iterator[Association]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AutoTypeAssociations):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"AutoTypeAssociations({self._items!r})"
