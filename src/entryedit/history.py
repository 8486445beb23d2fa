"""History rows of an entry with deferred deletion."""

from datetime import datetime, timezone
from typing import List

from .models import Entry

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class HistoryModel:
    """Visible history snapshots plus the ones staged for deletion.

    Deleting a row only stages the snapshot; the entry's history list is not
    touched until the session commits.
    """

    def __init__(self) -> None:
        self._entries: List[Entry] = []
        self._deleted: List[Entry] = []

    def set_entries(self, entries: List[Entry]) -> None:
        """Show ``entries`` newest first and forget staged deletions."""
        self._entries = sorted(
            entries, key=lambda e: e.updated_at or _EPOCH, reverse=True
        )
        self._deleted = []

    def rows(self) -> List[Entry]:
        return list(self._entries)

    def row_count(self) -> int:
        return len(self._entries)

    def entry_at(self, row: int) -> Entry:
        return self._entries[row]

    def delete_index(self, row: int) -> None:
        """Stage the snapshot at ``row`` for removal."""
        self._deleted.append(self._entries.pop(row))

    def delete_all(self) -> None:
        """Stage every visible snapshot for removal."""
        self._deleted.extend(self._entries)
        self._entries = []

    def deleted_entries(self) -> List[Entry]:
        return list(self._deleted)

    def clear_deleted_entries(self) -> None:
        self._deleted = []

    def clear(self) -> None:
        self._entries = []
        self._deleted = []
