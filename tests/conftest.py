"""Shared pytest fixtures for all tests."""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pytest

from entryedit.attachments import AttachmentPreviews
from entryedit.autotype import Association
from entryedit.config import SessionSettings
from entryedit.models import CustomIcons, Entry
from entryedit.session import EditSession, SessionMode

# ============================================================================
# Collaborator doubles
# ============================================================================


class RecordingMessages:
    """Message sink that keeps every message for assertions."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def _record(self, level: str, message: str) -> None:
        self.messages.append((level, message))

    def success(self, message: str) -> None:
        self._record("success", message)

    def error(self, message: str) -> None:
        self._record("error", message)

    def info(self, message: str) -> None:
        self._record("info", message)

    def warning(self, message: str) -> None:
        self._record("warning", message)

    def of_level(self, level: str) -> List[str]:
        return [m for lvl, m in self.messages if lvl == level]


class FakeAgent:
    """In-memory ssh-agent."""

    def __init__(self, running: bool = True) -> None:
        self.running = running
        self.identities: list = []

    def is_running(self) -> bool:
        return self.running

    def add_identity(self, key, lifetime: Optional[int] = None, confirm: bool = False):
        self.identities.append((key.fingerprint, lifetime, confirm))

    def remove_identity(self, key) -> None:
        self.identities = [i for i in self.identities if i[0] != key.fingerprint]


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def sample_entry() -> Entry:
    """Provide an entry with every kind of field filled in."""
    entry = Entry(
        title="GitHub",
        username="developer",
        password="GitHubToken456!",
        url="https://github.com",
        notes="Personal account",
        expiry_time=datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc),
    )
    entry.attributes.set("recovery", "abcd-efgh")
    entry.attributes.set("pin", "1234", protected=True)
    entry.attachments.set("id_ed25519.pub", b"ssh-ed25519 AAAA test")
    entry.auto_type_associations.add(Association("GitHub - *", ""))
    return entry


@pytest.fixture
def entry_with_history(sample_entry: Entry) -> Entry:
    """Provide an entry carrying two older snapshots."""
    for i, password in enumerate(["first-pass", "second-pass"]):
        snapshot = sample_entry.clone(include_history=False)
        snapshot.password = password
        snapshot.updated_at = datetime(2024, 1, 1 + i, tzinfo=timezone.utc)
        sample_entry.history.append(snapshot)
    return sample_entry


@pytest.fixture
def icons() -> CustomIcons:
    return CustomIcons([uuid.UUID(int=1)])


# ============================================================================
# Session Fixtures
# ============================================================================


@pytest.fixture
def messages() -> RecordingMessages:
    return RecordingMessages()


@pytest.fixture
def previews():
    store = AttachmentPreviews()
    yield store
    store.cleanup()


@pytest.fixture
def settings() -> SessionSettings:
    return SessionSettings(ssh_agent_enabled=True)


@pytest.fixture
def agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture
def session(messages, previews, agent) -> EditSession:
    """Provide a closed session wired to recording collaborators."""
    return EditSession(messages=messages, previews=previews, agent=agent)


@pytest.fixture
def edit_session(session, sample_entry, icons, settings) -> EditSession:
    """Provide a session editing ``sample_entry``."""
    session.load(sample_entry, SessionMode.EDIT, "Root", icons=icons, settings=settings)
    return session
