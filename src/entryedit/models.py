"""Data models for credential entries."""

import uuid as uuid_module
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Protocol

from .attachments import EntryAttachments
from .attributes import EntryAttributes
from .autotype import AutoTypeAssociations
from .config import Config


def _now() -> datetime:
    return datetime.now(timezone.utc)


class IconStore(Protocol):
    """Lookup for custom icons owned by the database."""

    def contains_custom_icon(self, icon_uuid: uuid_module.UUID) -> bool: ...


class CustomIcons:
    """In-memory set of custom icon ids."""

    def __init__(self, icon_uuids: Iterable[uuid_module.UUID] = ()) -> None:
        self._uuids = set(icon_uuids)

    def add(self, icon_uuid: uuid_module.UUID) -> None:
        self._uuids.add(icon_uuid)

    def remove(self, icon_uuid: uuid_module.UUID) -> None:
        self._uuids.discard(icon_uuid)

    def contains_custom_icon(self, icon_uuid: uuid_module.UUID) -> bool:
        return icon_uuid in self._uuids


@dataclass(eq=False)
class Entry:
    """A credential entry with custom attributes, attachments and history.

    The ``uuid`` never changes across edits. ``history`` holds snapshots of
    earlier states, oldest first.
    """

    title: str = ""
    username: str = ""
    password: str = ""
    url: str = ""
    notes: str = ""

    # Expiry
    expires: bool = False
    expiry_time: datetime = field(default_factory=lambda: _now().replace(microsecond=0))

    # Icon: a custom icon uuid takes precedence over the built-in number
    icon_number: int = Config.DEFAULT_ICON_NUMBER
    icon_uuid: Optional[uuid_module.UUID] = None

    # Auto-type; an empty default sequence inherits the parent's
    auto_type_enabled: bool = True
    default_auto_type_sequence: str = ""

    attributes: EntryAttributes = field(default_factory=EntryAttributes)
    attachments: EntryAttachments = field(default_factory=EntryAttachments)
    auto_type_associations: AutoTypeAssociations = field(
        default_factory=AutoTypeAssociations
    )
    history: List["Entry"] = field(default_factory=list)

    uuid: uuid_module.UUID = field(default_factory=uuid_module.uuid4)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    _update_snapshot: Optional["Entry"] = field(default=None, repr=False)

    def __post_init__(self):
        """Set timestamps if not provided."""
        now = _now()
        if self.created_at is None:
            self.created_at = now
        if self.updated_at is None:
            self.updated_at = now

    def mark_updated(self) -> None:
        """Update modification timestamp when entry is changed."""
        self.updated_at = _now()

    def set_icon(self, number: int) -> None:
        """Use a built-in icon, dropping any custom icon."""
        self.icon_number = number
        self.icon_uuid = None

    def set_custom_icon(self, icon_uuid: uuid_module.UUID) -> None:
        self.icon_uuid = icon_uuid

    def effective_auto_type_sequence(
        self, parent_sequence: str = Config.DEFAULT_AUTO_TYPE_SEQUENCE
    ) -> str:
        """Return the entry's own sequence, or the inherited one."""
        return self.default_auto_type_sequence or parent_sequence

    def copy_data_from(self, other: "Entry") -> None:
        """Copy every editable field from ``other``; uuid and history stay."""
        self.title = other.title
        self.username = other.username
        self.password = other.password
        self.url = other.url
        self.notes = other.notes
        self.expires = other.expires
        self.expiry_time = other.expiry_time
        self.icon_number = other.icon_number
        self.icon_uuid = other.icon_uuid
        self.auto_type_enabled = other.auto_type_enabled
        self.default_auto_type_sequence = other.default_auto_type_sequence
        self.attributes.copy_from(other.attributes)
        self.attachments.copy_from(other.attachments)
        self.auto_type_associations.copy_from(other.auto_type_associations)
        self.created_at = other.created_at
        self.updated_at = other.updated_at

    def clone(self, include_history: bool = True) -> "Entry":
        """Deep copy of this entry, keeping its uuid."""
        entry = Entry(uuid=self.uuid)
        entry.copy_data_from(self)
        if include_history:
            entry.history = [item.clone(include_history=False) for item in self.history]
        return entry

    def data_equals(self, other: "Entry") -> bool:
        """Compare every editable field, including the sub-collections."""
        return (
            self.title == other.title
            and self.username == other.username
            and self.password == other.password
            and self.url == other.url
            and self.notes == other.notes
            and self.expires == other.expires
            and self.expiry_time == other.expiry_time
            and self.icon_number == other.icon_number
            and self.icon_uuid == other.icon_uuid
            and self.auto_type_enabled == other.auto_type_enabled
            and self.default_auto_type_sequence == other.default_auto_type_sequence
            and self.attributes == other.attributes
            and self.attachments == other.attachments
            and self.auto_type_associations == other.auto_type_associations
        )

    def begin_update(self) -> None:
        """Remember the current state so ``end_update`` can detect changes."""
        self._update_snapshot = self.clone(include_history=False)

    def end_update(self) -> bool:
        """Finish an update, recording history if anything changed.

        Returns:
            True if the entry differs from the state at ``begin_update``
        """
        snapshot = self._update_snapshot
        self._update_snapshot = None
        if snapshot is None or self.data_equals(snapshot):
            return False

        self.history.append(snapshot)
        self.mark_updated()
        return True

    def remove_history_items(self, items: Iterable["Entry"]) -> None:
        """Remove the given snapshot objects from history."""
        doomed = {id(item) for item in items}
        if doomed:
            self.history = [h for h in self.history if id(h) not in doomed]

    def truncate_history(self, max_items: int) -> None:
        """Drop the oldest snapshots beyond ``max_items``; negative keeps all."""
        if max_items < 0:
            return
        excess = len(self.history) - max_items
        if excess > 0:
            del self.history[:excess]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage."""
        return {
            "uuid": str(self.uuid),
            "title": self.title,
            "username": self.username,
            "password": self.password,
            "url": self.url,
            "notes": self.notes,
            "expires": self.expires,
            "expiry_time": self.expiry_time.isoformat(),
            "icon_number": self.icon_number,
            "icon_uuid": str(self.icon_uuid) if self.icon_uuid else None,
            "auto_type_enabled": self.auto_type_enabled,
            "default_auto_type_sequence": self.default_auto_type_sequence,
            "attributes": self.attributes.to_dict(),
            "attachments": self.attachments.to_dict(),
            "auto_type_associations": self.auto_type_associations.to_list(),
            "history": [item.to_dict() for item in self.history],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """Create Entry from dictionary."""
        data = dict(data)

        # Convert ISO datetime strings
        for dt_field in ["expiry_time", "created_at", "updated_at"]:
            if dt_field in data and isinstance(data[dt_field], str):
                data[dt_field] = datetime.fromisoformat(data[dt_field])

        if data.get("uuid"):
            data["uuid"] = uuid_module.UUID(data["uuid"])
        else:
            data.pop("uuid", None)
        if data.get("icon_uuid"):
            data["icon_uuid"] = uuid_module.UUID(data["icon_uuid"])

        data["attributes"] = EntryAttributes.from_dict(data.get("attributes", {}))
        data["attachments"] = EntryAttachments.from_dict(data.get("attachments", {}))
        data["auto_type_associations"] = AutoTypeAssociations.from_list(
            data.get("auto_type_associations", [])
        )
        data["history"] = [cls.from_dict(item) for item in data.get("history", [])]

        return cls(**data)
