"""Transactional edit sessions for credential entries."""

__version__ = "0.1.0"

# ruff: noqa: E402
from .attachments import (
    AttachmentError,
    AttachmentReadError,
    AttachmentTooLargeError,
    AttachmentWriteError,
    EntryAttachments,
)
from .attributes import EntryAttributes
from .autotype import Association, AutoTypeAssociations, validate_sequence
from .config import SessionSettings, config
from .history import HistoryModel
from .models import CustomIcons, Entry
from .session import (
    EditSession,
    EditSessionError,
    ExpiryPreset,
    PasswordMismatchError,
    ReadOnlySessionError,
    SessionClosedError,
    SessionMode,
    SessionState,
    SessionStatus,
    open_session,
)
from .sshkey import KeyParseError, KeySource, OpenSSHKey

__all__ = [
    "Association",
    "AttachmentError",
    "AttachmentReadError",
    "AttachmentTooLargeError",
    "AttachmentWriteError",
    "AutoTypeAssociations",
    "CustomIcons",
    "EditSession",
    "EditSessionError",
    "Entry",
    "EntryAttachments",
    "EntryAttributes",
    "ExpiryPreset",
    "HistoryModel",
    "KeyParseError",
    "KeySource",
    "OpenSSHKey",
    "PasswordMismatchError",
    "ReadOnlySessionError",
    "SessionClosedError",
    "SessionMode",
    "SessionSettings",
    "SessionState",
    "SessionStatus",
    "config",
    "open_session",
    "validate_sequence",
]
