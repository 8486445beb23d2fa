"""Edit sessions - the transactional editing of a single entry.

A session copies an entry into a working copy, lets the presentation layer
change that copy through intents, and writes it back on commit. The entry
itself is only touched by ``apply``/``commit`` (and by ``cancel`` when a new
entry is left pointing at a custom icon that no longer exists).

Change detection never relies on a dirty flag: ``has_been_modified`` replays
the commit against a scratch clone of the entry and asks it whether
anything differs.
"""

import calendar
import functools
import logging
import os
import uuid as uuid_module
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from . import ui
from .attachments import (
    AttachmentError,
    AttachmentPreviews,
    AttachmentReadError,
    AttachmentTooLargeError,
    EntryAttachments,
    read_attachment_file,
    write_attachment_file,
)
from .attributes import EntryAttributes
from .autotype import (
    Association,
    AutoTypeAssociations,
    SequenceWarning,
    validate_sequence,
)
from .config import Config, SessionSettings, config
from .history import HistoryModel
from .messages import (
    CONFIRM_OVERWRITE,
    ERROR_AGENT_NOT_RUNNING,
    ERROR_CLIPBOARD,
    ERROR_CREATE_DIRECTORY,
    ERROR_FILE_ERROR,
    ERROR_FILE_TOO_LARGE,
    ERROR_NO_DIRECTORY,
    ERROR_OPEN_ATTACHMENTS,
    ERROR_OPEN_FILES,
    ERROR_OPEN_PRIVATE_KEY,
    ERROR_PASSWORD_MISMATCH,
    ERROR_READ_ONLY,
    ERROR_SAVE_ATTACHMENT,
    ERROR_SAVE_ATTACHMENTS,
    ERROR_SESSION_CLOSED,
    HEADLINE_ADD,
    HEADLINE_EDIT,
    HEADLINE_HISTORY,
    SUCCESS_KEY_ADDED,
    WARNING_SEQUENCE_REPETITION,
    WARNING_SEQUENCE_SYNTAX,
)
from .models import Entry, IconStore
from .passwordgen import GenOptions, copy_to_clipboard, generate_password
from .sshkey import KeyAgent, KeyParseError, KeySource, OpenSSHKey

logger = logging.getLogger(__name__)


class EditSessionError(Exception):
    """Base exception for edit session errors."""

    pass


class PasswordMismatchError(EditSessionError):
    """Raised when password and repeated password differ at commit."""

    pass


class ReadOnlySessionError(EditSessionError):
    """Raised when committing a session that views a history entry."""

    pass


class SessionClosedError(EditSessionError):
    """Raised when an intent reaches a session with no entry loaded."""

    pass


class SessionMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    HISTORY = "history"


class SessionStatus(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class ExpiryPreset(Enum):
    """Quick expiry choices as (days, months) offsets from now."""

    TOMORROW = (1, 0)
    ONE_WEEK = (7, 0)
    TWO_WEEKS = (14, 0)
    THREE_WEEKS = (21, 0)
    ONE_MONTH = (0, 1)
    THREE_MONTHS = (0, 3)
    SIX_MONTHS = (0, 6)
    ONE_YEAR = (0, 12)

    def apply(self, moment: datetime) -> datetime:
        days, months = self.value
        return _add_months(moment, months) + timedelta(days=days)


def _add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass
class WorkingCopy:
    """Session-local copy of every editable entry field."""

    title: str = ""
    username: str = ""
    url: str = ""
    password: str = ""
    password_repeat: str = ""
    notes: str = ""
    expires: bool = False
    expiry_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    icon_number: int = Config.DEFAULT_ICON_NUMBER
    icon_uuid: Optional[uuid_module.UUID] = None
    auto_type_enabled: bool = True
    inherit_sequence: bool = True
    sequence: str = ""
    attributes: EntryAttributes = field(default_factory=EntryAttributes)
    attachments: EntryAttachments = field(default_factory=EntryAttachments)
    associations: AutoTypeAssociations = field(default_factory=AutoTypeAssociations)

    @classmethod
    def from_entry(cls, entry: Entry, parent_sequence: str) -> "WorkingCopy":
        copy = cls(
            title=entry.title,
            username=entry.username,
            url=entry.url,
            password=entry.password,
            password_repeat=entry.password,
            notes=entry.notes,
            expires=entry.expires,
            expiry_time=entry.expiry_time,
            icon_number=entry.icon_number,
            icon_uuid=entry.icon_uuid,
            auto_type_enabled=entry.auto_type_enabled,
            inherit_sequence=not entry.default_auto_type_sequence,
            sequence=entry.effective_auto_type_sequence(parent_sequence),
        )
        copy.attributes.copy_from(entry.attributes)
        copy.attachments.copy_from(entry.attachments)
        copy.associations.copy_from(entry.auto_type_associations)
        return copy


@dataclass(frozen=True)
class SessionState:
    """Read-only view of a session for the presentation layer."""

    mode: Optional[SessionMode]
    status: SessionStatus
    saved: bool
    read_only: bool
    headline: str
    title: str = ""
    username: str = ""
    url: str = ""
    password: str = ""
    password_repeat: str = ""
    password_visible: bool = False
    notes: str = ""
    notes_visible: bool = True
    expires: bool = False
    expiry_time: Optional[datetime] = None
    icon_number: int = Config.DEFAULT_ICON_NUMBER
    icon_uuid: Optional[uuid_module.UUID] = None
    auto_type_enabled: bool = True
    inherit_sequence: bool = True
    sequence: str = ""
    attributes: Tuple[str, ...] = ()
    current_attribute: Optional[str] = None
    attribute_text: str = ""
    attribute_editable: bool = False
    attachments: Tuple[str, ...] = ()
    associations: Tuple[Association, ...] = ()
    history: Tuple[Entry, ...] = ()
    history_visible: bool = False
    ssh_agent_enabled: bool = False


def _intent(method):
    """Wrap a mutating intent: refuse closed sessions, ignore read-only ones."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        self._require_open()
        if self.read_only:
            logger.debug(f"Ignoring {method.__name__} on a history view")
            return False
        result = method(self, *args, **kwargs)
        self._notify_state()
        return True if result is None else result

    return wrapper


StateCallback = Callable[[SessionState], None]
FinishedCallback = Callable[[bool], None]
HistoryCallback = Callable[[Entry], None]


class EditSession:
    """Editing session for one entry at a time.

    Args:
        messages: Sink for transient user messages (rich console by default)
        previews: Temp-file store used to open attachments externally
        agent: Running ssh-agent, when the application has one
    """

    def __init__(
        self,
        messages: Optional[ui.MessageSink] = None,
        previews: Optional[AttachmentPreviews] = None,
        agent: Optional[KeyAgent] = None,
    ) -> None:
        self.messages = messages or ui.ConsoleMessages()
        self.previews = previews or AttachmentPreviews()
        self.agent = agent

        self.entry: Optional[Entry] = None
        self.mode: Optional[SessionMode] = None
        self.status = SessionStatus.CLOSED
        self.settings = SessionSettings()
        self.headline = ""
        self.working: Optional[WorkingCopy] = None
        self.history = HistoryModel()

        self._icons: Optional[IconStore] = None
        self._parent_sequence = Config.DEFAULT_AUTO_TYPE_SEQUENCE
        self._saved = False
        self._notes_visible = True
        self._password_visible = False
        self._current_attribute: Optional[str] = None
        self._attribute_text = ""
        self._attribute_editable = False

        self._state_callbacks: List[StateCallback] = []
        self._finished_callbacks: List[FinishedCallback] = []
        self._history_callbacks: List[HistoryCallback] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: StateCallback) -> None:
        """Call ``callback`` with the new state after every intent."""
        if callback not in self._state_callbacks:
            self._state_callbacks.append(callback)

    def unsubscribe(self, callback: StateCallback) -> None:
        if callback in self._state_callbacks:
            self._state_callbacks.remove(callback)

    def on_edit_finished(self, callback: FinishedCallback) -> None:
        self._finished_callbacks.append(callback)

    def on_history_entry_activated(self, callback: HistoryCallback) -> None:
        self._history_callbacks.append(callback)

    def _fire(self, callbacks: list, *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.warning(f"Error in session callback {callback!r}: {e}")

    def _notify_state(self) -> None:
        if self._state_callbacks:
            self._fire(self._state_callbacks, self.state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN

    @property
    def read_only(self) -> bool:
        return self.mode is SessionMode.HISTORY

    @property
    def saved(self) -> bool:
        return self._saved

    def _require_open(self) -> None:
        if not self.is_open:
            raise SessionClosedError(ERROR_SESSION_CLOSED)

    def load(
        self,
        entry: Entry,
        mode: SessionMode = SessionMode.EDIT,
        parent_name: str = "",
        icons: Optional[IconStore] = None,
        settings: Optional[SessionSettings] = None,
        parent_sequence: str = Config.DEFAULT_AUTO_TYPE_SEQUENCE,
    ) -> None:
        """Open the session on ``entry``.

        In create mode ``entry`` is the freshly constructed record, so the
        working copy starts from its defaults. In history mode ``entry`` is
        the snapshot being viewed.
        """
        if self.is_open:
            raise EditSessionError("A session is already open; commit or cancel it first.")

        self.entry = entry
        self.mode = SessionMode(mode)
        self.settings = settings or config.snapshot()
        self._icons = icons
        self._parent_sequence = parent_sequence
        self._saved = False
        self._notes_visible = not self.settings.hide_notes
        self._password_visible = self.settings.passwords_cleartext
        self.status = SessionStatus.OPEN

        if self.mode is SessionMode.HISTORY:
            self.headline = HEADLINE_HISTORY.format(parent=parent_name)
        elif self.mode is SessionMode.CREATE:
            self.headline = HEADLINE_ADD.format(parent=parent_name)
        else:
            self.headline = HEADLINE_EDIT.format(parent=parent_name, title=entry.title)

        self._set_forms(entry, restore=False)
        logger.debug(f"Opened {self.mode.value} session for entry {entry.uuid}")
        self._notify_state()

    def _set_forms(self, entry: Entry, restore: bool) -> None:
        self.working = WorkingCopy.from_entry(entry, self._parent_sequence)
        self._select_first_attribute()
        if self.mode is SessionMode.HISTORY:
            self.history.clear()
        elif not restore:
            self.history.set_entries(entry.history)

    def _close(self, status: SessionStatus, committed: bool) -> None:
        uuid = self.entry.uuid if self.entry else None
        self.status = status
        self.entry = None
        self.working = None
        self.history.clear()
        self._icons = None
        self._current_attribute = None
        self._attribute_text = ""
        self._attribute_editable = False
        logger.debug(f"Closed session for entry {uuid}: {status.value}")
        self._fire(self._finished_callbacks, committed)
        self._notify_state()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        wc = self.working
        base = dict(
            mode=self.mode,
            status=self.status,
            saved=self._saved,
            read_only=self.read_only,
            headline=self.headline,
        )
        if wc is None:
            return SessionState(**base)
        return SessionState(
            **base,
            title=wc.title,
            username=wc.username,
            url=wc.url,
            password=wc.password,
            password_repeat=wc.password_repeat,
            password_visible=self._password_visible,
            notes=wc.notes,
            notes_visible=self._notes_visible,
            expires=wc.expires,
            expiry_time=wc.expiry_time,
            icon_number=wc.icon_number,
            icon_uuid=wc.icon_uuid,
            auto_type_enabled=wc.auto_type_enabled,
            inherit_sequence=wc.inherit_sequence,
            sequence=wc.sequence,
            attributes=tuple(wc.attributes.keys()),
            current_attribute=self._current_attribute,
            attribute_text=self._attribute_text,
            attribute_editable=self._attribute_editable,
            attachments=tuple(wc.attachments.keys()),
            associations=tuple(wc.associations),
            history=tuple(self.history.rows()),
            history_visible=not self.read_only and bool(self.entry and self.entry.history),
            ssh_agent_enabled=self.settings.ssh_agent_enabled,
        )

    def toggle_notes(self, visible: bool) -> None:
        """Show or hide the notes field; display only."""
        self._notes_visible = visible
        self._notify_state()

    def toggle_password_visible(self, visible: bool) -> None:
        self._password_visible = visible
        self._notify_state()

    # ------------------------------------------------------------------
    # Scalar field intents
    # ------------------------------------------------------------------

    @_intent
    def set_title(self, title: str) -> None:
        self.working.title = title

    @_intent
    def set_username(self, username: str) -> None:
        self.working.username = username

    @_intent
    def set_url(self, url: str) -> None:
        self.working.url = url

    @_intent
    def set_password(self, password: str) -> None:
        self.working.password = password

    @_intent
    def set_password_repeat(self, password: str) -> None:
        self.working.password_repeat = password

    @_intent
    def set_generated_password(self, password: str) -> None:
        """Use a generated password for both password fields."""
        self.working.password = password
        self.working.password_repeat = password

    @_intent
    def generate_password(self, opts: Optional[GenOptions] = None) -> bool:
        """Generate a new password into both password fields."""
        try:
            password = generate_password(opts or GenOptions())
        except ValueError as e:
            self.messages.error(str(e))
            return False
        self.working.password = password
        self.working.password_repeat = password
        return True

    @_intent
    def set_notes(self, notes: str) -> None:
        self.working.notes = notes

    @_intent
    def set_expires(self, expires: bool) -> None:
        self.working.expires = expires

    @_intent
    def set_expiry_time(self, expiry_time: datetime) -> None:
        self.working.expiry_time = expiry_time

    @_intent
    def use_expiry_preset(
        self, preset: ExpiryPreset, now: Optional[datetime] = None
    ) -> None:
        """Enable expiry at ``now`` plus the preset offset."""
        now = now or datetime.now(timezone.utc).replace(microsecond=0)
        self.working.expires = True
        self.working.expiry_time = preset.apply(now)

    @_intent
    def set_icon(self, number: int) -> None:
        self.working.icon_number = number
        self.working.icon_uuid = None

    @_intent
    def set_custom_icon(self, icon_uuid: uuid_module.UUID) -> None:
        self.working.icon_uuid = icon_uuid

    @_intent
    def set_auto_type_enabled(self, enabled: bool) -> None:
        self.working.auto_type_enabled = enabled

    @_intent
    def set_inherit_sequence(self, inherit: bool) -> None:
        self.working.inherit_sequence = inherit

    @_intent
    def set_sequence(self, sequence: str) -> None:
        self.working.sequence = sequence

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def _select_first_attribute(self) -> None:
        keys = self.working.attributes.keys()
        self._display_attribute(keys[0] if keys else None)

    def _display_attribute(self, name: Optional[str]) -> None:
        attributes = self.working.attributes
        self._current_attribute = name
        if name is None or name not in attributes:
            self._current_attribute = None
            self._attribute_text = ""
            self._attribute_editable = False
        elif attributes.is_protected(name):
            self._attribute_text = Config.PROTECTED_PLACEHOLDER
            self._attribute_editable = False
        else:
            self._attribute_text = attributes.value(name)
            self._attribute_editable = not self.read_only

    def _pending_attribute(self) -> Optional[Tuple[str, str, bool]]:
        """The edit box content not yet stored in the attribute set."""
        name = self._current_attribute
        if name is None or not self._attribute_editable or self.read_only:
            return None
        attributes = self.working.attributes
        if name not in attributes:
            return None
        return name, self._attribute_text, attributes.is_protected(name)

    def _flush_attribute_text(self) -> None:
        pending = self._pending_attribute()
        if pending:
            self.working.attributes.set(*pending)

    def select_attribute(self, name: Optional[str]) -> None:
        """Move the attribute selection, storing the previous edit first."""
        self._require_open()
        if name == self._current_attribute:
            return
        self._flush_attribute_text()
        self._display_attribute(name)
        self._notify_state()

    def attribute_display(self, name: str) -> str:
        """Text shown for an attribute; protected values stay hidden."""
        self._require_open()
        if self.working.attributes.is_protected(name):
            return Config.PROTECTED_PLACEHOLDER
        return self.working.attributes.value(name)

    def reveal_attribute(self) -> None:
        """Show the selected protected attribute in cleartext."""
        self._require_open()
        name = self._current_attribute
        if name is None or self._attribute_editable:
            return
        self._attribute_text = self.working.attributes.value(name)
        self._attribute_editable = not self.read_only
        self._notify_state()

    @_intent
    def set_attribute_text(self, text: str) -> bool:
        """Edit the value of the selected attribute."""
        if self._current_attribute is None or not self._attribute_editable:
            return False
        self._attribute_text = text
        return True

    @_intent
    def insert_attribute(self) -> str:
        """Add an empty attribute with a unique name and select it."""
        self._flush_attribute_text()
        name = self.working.attributes.unique_name(Config.NEW_ATTRIBUTE_NAME)
        self.working.attributes.set(name, "")
        self._display_attribute(name)
        return name

    @_intent
    def rename_attribute(self, old_name: str, new_name: str) -> bool:
        try:
            self.working.attributes.rename(old_name, new_name)
        except ValueError as e:
            self.messages.error(str(e))
            return False
        if self._current_attribute == old_name:
            self._current_attribute = new_name
        return True

    @_intent
    def remove_attribute(self, name: Optional[str] = None) -> None:
        name = name or self._current_attribute
        if name is None:
            return
        self.working.attributes.remove(name)
        if name == self._current_attribute:
            self._display_attribute(None)

    @_intent
    def protect_attribute(self, protected: bool) -> bool:
        """Toggle protection of the selected attribute."""
        name = self._current_attribute
        if name is None:
            return False
        attributes = self.working.attributes
        if protected:
            if attributes.is_protected(name):
                return False
            attributes.set(name, self._attribute_text, True)
        else:
            # The edit box may show the placeholder; keep the stored value
            attributes.set(name, attributes.value(name), False)
        self._display_attribute(name)
        return True

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    @_intent
    def add_attachment(self, filename: str, data: bytes) -> None:
        self.working.attachments.set(filename, data)

    @_intent
    def insert_attachments(self, paths: Sequence[str]) -> List[str]:
        """Attach files from disk; unreadable ones are reported together."""
        added = []
        errors = []
        for path in paths:
            name = os.path.basename(path)
            try:
                data = read_attachment_file(path)
            except AttachmentError as e:
                errors.append(ERROR_FILE_ERROR.format(name=name, error=e))
                continue
            self.working.attachments.set(name, data)
            added.append(name)

        if errors:
            self.messages.error(ERROR_OPEN_FILES.format(errors="\n".join(errors)))
        return added

    @_intent
    def remove_attachments(self, filenames: Sequence[str]) -> None:
        self.working.attachments.remove(list(filenames))

    def save_attachment(self, filename: str, path: str) -> bool:
        """Write one attachment to ``path``."""
        self._require_open()
        try:
            write_attachment_file(path, self.working.attachments.value(filename))
        except AttachmentError as e:
            self.messages.error(ERROR_SAVE_ATTACHMENT.format(error=e))
            return False
        return True

    def save_attachments(
        self,
        filenames: Sequence[str],
        directory: Optional[str] = None,
        confirm_overwrite: Callable[[str], Optional[bool]] = ui.confirm_overwrite,
    ) -> bool:
        """Write attachments into ``directory``.

        Without ``directory`` the configured attachment directory is used.
        ``confirm_overwrite`` is asked before replacing an existing file;
        ``False`` skips that file, ``None`` aborts the whole batch.
        """
        self._require_open()
        directory = directory or self.settings.attachment_dir
        if not directory:
            self.messages.error(ERROR_NO_DIRECTORY)
            return False
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError:
            self.messages.error(ERROR_CREATE_DIRECTORY.format(path=directory))
            return False

        errors = []
        for filename in filenames:
            path = os.path.join(directory, filename)
            if os.path.exists(path):
                answer = confirm_overwrite(CONFIRM_OVERWRITE.format(name=filename))
                if answer is None:
                    return False
                if not answer:
                    continue
            try:
                write_attachment_file(path, self.working.attachments.value(filename))
            except AttachmentError as e:
                errors.append(ERROR_FILE_ERROR.format(name=filename, error=e))

        if errors:
            self.messages.error(ERROR_SAVE_ATTACHMENTS.format(errors="\n".join(errors)))
            return False
        return True

    def open_attachments(self, filenames: Sequence[str]) -> List[str]:
        """Write preview temp files and return their paths."""
        self._require_open()
        paths = []
        errors = []
        for filename in filenames:
            try:
                paths.append(
                    self.previews.write(filename, self.working.attachments.value(filename))
                )
            except AttachmentError as e:
                errors.append(ERROR_FILE_ERROR.format(name=filename, error=e))

        if errors:
            self.messages.error(ERROR_OPEN_ATTACHMENTS.format(errors="\n".join(errors)))
        return paths

    # ------------------------------------------------------------------
    # Auto-type associations
    # ------------------------------------------------------------------

    @_intent
    def add_association(self, window: str = "", sequence: str = "") -> int:
        return self.working.associations.add(Association(window, sequence))

    @_intent
    def update_association(self, index: int, window: str, sequence: str = "") -> bool:
        if not 0 <= index < len(self.working.associations):
            return False
        self.working.associations.update(index, Association(window, sequence))
        return True

    @_intent
    def remove_association(self, index: int) -> bool:
        if not 0 <= index < len(self.working.associations):
            return False
        self.working.associations.remove(index)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @_intent
    def delete_history_entry(self, row: int) -> bool:
        if not 0 <= row < self.history.row_count():
            return False
        self.history.delete_index(row)
        return True

    @_intent
    def delete_all_history_entries(self) -> None:
        self.history.delete_all()

    @_intent
    def restore_history_entry(self, row: int) -> bool:
        """Load a snapshot into the working copy; history stays as it is."""
        if not 0 <= row < self.history.row_count():
            return False
        self._set_forms(self.history.entry_at(row), restore=True)
        return True

    def show_history_entry(self, row: int) -> bool:
        """Ask the caller to open the snapshot at ``row`` for viewing."""
        self._require_open()
        if self.read_only or not 0 <= row < self.history.row_count():
            return False
        self._fire(self._history_callbacks, self.history.entry_at(row))
        return True

    # ------------------------------------------------------------------
    # SSH agent
    # ------------------------------------------------------------------

    def ssh_key(self, source: KeySource) -> Optional[OpenSSHKey]:
        """Parse the private key held in an attachment or an external file."""
        self._require_open()
        if not self.settings.ssh_agent_enabled:
            return None

        if source.from_attachment:
            data = self.working.attachments.value(source.attachment)
        elif not source.file_path:
            return None
        else:
            try:
                data = read_attachment_file(
                    source.file_path, max_size=Config.MAX_PRIVATE_KEY_BYTES
                )
            except AttachmentTooLargeError:
                self.messages.error(ERROR_FILE_TOO_LARGE)
                return None
            except AttachmentReadError:
                self.messages.error(ERROR_OPEN_PRIVATE_KEY)
                return None

        if not data:
            return None

        try:
            return OpenSSHKey.parse(data)
        except KeyParseError as e:
            self.messages.error(str(e))
            return None

    def decrypt_ssh_key(self, source: KeySource) -> Optional[OpenSSHKey]:
        """Parse and unlock a key with the entry's password."""
        key = self.ssh_key(source)
        if key is None:
            return None
        try:
            key.decrypt(self.working.password)
        except KeyParseError as e:
            self.messages.error(str(e))
            return None
        return key

    def add_key_to_agent(
        self, source: KeySource, lifetime: Optional[int] = None, confirm: bool = False
    ) -> bool:
        self._require_open()
        if self.agent is None or not self.agent.is_running():
            self.messages.error(ERROR_AGENT_NOT_RUNNING)
            return False
        key = self.decrypt_ssh_key(source)
        if key is None:
            return False
        self.agent.add_identity(key, lifetime=lifetime, confirm=confirm)
        self.messages.success(SUCCESS_KEY_ADDED)
        return True

    def remove_key_from_agent(self, source: KeySource) -> bool:
        self._require_open()
        if self.agent is None or not self.agent.is_running():
            self.messages.error(ERROR_AGENT_NOT_RUNNING)
            return False
        key = self.ssh_key(source)
        if key is not None and not key.has_public_key:
            key = self.decrypt_ssh_key(source)
        if key is None:
            return False
        self.agent.remove_identity(key)
        return True

    def copy_public_key(self, source: KeySource) -> bool:
        key = self.ssh_key(source)
        if key is None:
            return False
        try:
            public_key = key.public_key
        except KeyParseError as e:
            self.messages.error(str(e))
            return False
        if not copy_to_clipboard(public_key):
            self.messages.warning(ERROR_CLIPBOARD)
            return False
        return True

    # ------------------------------------------------------------------
    # Commit / cancel
    # ------------------------------------------------------------------

    def _apply(
        self, entry: Entry, attributes: EntryAttributes, warn: bool = False
    ) -> None:
        """Write the working copy into ``entry``."""
        wc = self.working
        entry.attributes.copy_from(attributes)
        entry.attachments.copy_from(wc.attachments)

        entry.title = wc.title
        entry.username = wc.username
        entry.url = wc.url
        entry.password = wc.password
        entry.expires = wc.expires
        entry.expiry_time = wc.expiry_time
        entry.notes = wc.notes

        if wc.icon_number < 0:
            entry.set_icon(Config.DEFAULT_ICON_NUMBER)
        else:
            entry.icon_number = wc.icon_number
            entry.icon_uuid = wc.icon_uuid

        entry.auto_type_enabled = wc.auto_type_enabled
        if wc.inherit_sequence:
            entry.default_auto_type_sequence = ""
        else:
            if warn:
                self._warn_sequence(wc.sequence)
            entry.default_auto_type_sequence = wc.sequence

        entry.auto_type_associations.copy_from(wc.associations)

    def _warn_sequence(self, sequence: str) -> None:
        for problem in validate_sequence(sequence):
            if problem is SequenceWarning.SYNTAX:
                message = WARNING_SEQUENCE_SYNTAX.format(sequence=sequence)
            else:
                message = WARNING_SEQUENCE_REPETITION.format(sequence=sequence)
            logger.warning(message)
            self.messages.warning(message)

    def _flushed_attributes(self) -> EntryAttributes:
        attributes = EntryAttributes()
        attributes.copy_from(self.working.attributes)
        pending = self._pending_attribute()
        if pending:
            attributes.set(*pending)
        return attributes

    def has_been_modified(self) -> bool:
        """Whether committing now would change the entry.

        Neither the entry nor the working copy is touched.
        """
        if not self.is_open or self.read_only:
            return False
        if self.history.deleted_entries():
            return True

        scratch = self.entry.clone(include_history=False)
        scratch.begin_update()
        self._apply(scratch, self._flushed_attributes())
        return scratch.end_update()

    def apply(self) -> bool:
        """Write the working copy into the entry and keep the session open.

        Returns:
            True if the entry changed (always True for a new entry)

        Raises:
            ReadOnlySessionError: When viewing a history entry
            PasswordMismatchError: If the two password fields differ
        """
        self._require_open()
        if self.read_only:
            raise ReadOnlySessionError(ERROR_READ_ONLY)

        wc = self.working
        if wc.password != wc.password_repeat:
            raise PasswordMismatchError(ERROR_PASSWORD_MISMATCH)

        self._flush_attribute_text()

        # Before begin_update so deleted items never return inside the new snapshot
        entry = self.entry
        entry.remove_history_items(self.history.deleted_entries())
        self.history.clear_deleted_entries()

        wc.associations.remove_empty()

        creating = self.mode is SessionMode.CREATE
        if not creating:
            entry.begin_update()

        self._apply(entry, wc.attributes, warn=True)
        self._saved = True

        modified = True
        if not creating:
            modified = entry.end_update()
            if modified:
                entry.truncate_history(self.settings.history_max_items)
            self.history.set_entries(entry.history)

        logger.debug(f"Applied session to entry {entry.uuid} (modified={modified})")
        self._notify_state()
        return modified

    def commit(self) -> bool:
        """Apply the working copy and close the session as committed."""
        modified = self.apply()
        self._close(SessionStatus.COMMITTED, committed=True)
        return modified

    def cancel(self) -> None:
        """Close without writing the working copy."""
        self._require_open()
        if self.read_only:
            self._close(SessionStatus.CANCELLED, committed=False)
            return

        entry = self.entry
        if (
            self.mode is SessionMode.CREATE
            and not self._saved
            and entry.icon_uuid is not None
            and (self._icons is None or not self._icons.contains_custom_icon(entry.icon_uuid))
        ):
            entry.set_icon(Config.DEFAULT_ICON_NUMBER)

        self._close(SessionStatus.CANCELLED, committed=self._saved)

    # User-facing wrappers: failures become messages instead of exceptions

    def save(self) -> bool:
        """Apply changes, reporting failures to the user."""
        try:
            self.apply()
        except EditSessionError as e:
            self.messages.error(str(e))
            return False
        return True

    def accept(self) -> bool:
        """Commit and close; a history view simply closes."""
        self._require_open()
        if self.read_only:
            self.cancel()
            return True
        try:
            self.commit()
        except EditSessionError as e:
            self.messages.error(str(e))
            return False
        return True

    def close(self, confirm_discard: Callable[[], bool] = ui.confirm_discard) -> bool:
        """Cancel, asking first when there are unsaved changes.

        Returns:
            False if the user chose to keep editing
        """
        self._require_open()
        if self.has_been_modified() and not confirm_discard():
            return False
        self.cancel()
        return True


def open_session(
    entry: Entry,
    mode: SessionMode = SessionMode.EDIT,
    parent_name: str = "",
    **kwargs,
) -> EditSession:
    """Create a session and load ``entry`` into it."""
    session_kwargs = {
        key: kwargs.pop(key) for key in ("messages", "previews", "agent") if key in kwargs
    }
    session = EditSession(**session_kwargs)
    session.load(entry, mode, parent_name, **kwargs)
    return session
