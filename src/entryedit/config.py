"""Configuration management for entry edit sessions."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class Config:
    """Configuration settings for entry editing."""

    HIDE_NOTES_ENV = "ENTRYEDIT_HIDE_NOTES"
    PASSWORDS_CLEARTEXT_ENV = "ENTRYEDIT_PASSWORDS_CLEARTEXT"
    SSH_AGENT_ENV = "ENTRYEDIT_SSH_AGENT"
    HISTORY_MAX_ITEMS_ENV = "ENTRYEDIT_HISTORY_MAX_ITEMS"
    ATTACHMENT_DIR_ENV = "ENTRYEDIT_ATTACHMENT_DIR"

    # Entry defaults
    DEFAULT_ICON_NUMBER = 0
    DEFAULT_AUTO_TYPE_SEQUENCE = "{USERNAME}{TAB}{PASSWORD}{ENTER}"
    DEFAULT_HISTORY_MAX_ITEMS = 10  # Negative means unlimited

    # Attribute editing
    NEW_ATTRIBUTE_NAME = "New attribute"
    PROTECTED_PLACEHOLDER = "[PROTECTED] Press reveal to view or edit"

    # Size limits
    MAX_PRIVATE_KEY_BYTES = 1024 * 1024

    def __init__(self):
        """Initialize configuration with environment variable support."""
        self.hide_notes = self._get_flag(self.HIDE_NOTES_ENV)
        self.passwords_cleartext = self._get_flag(self.PASSWORDS_CLEARTEXT_ENV)
        self.ssh_agent_enabled = self._get_flag(self.SSH_AGENT_ENV)
        self.history_max_items = self._get_history_max_items()
        self.attachment_dir = self._get_attachment_dir()

    @staticmethod
    def _get_flag(name: str) -> bool:
        """Read a boolean flag from the environment."""
        value = os.getenv(name, "")
        return value.strip().lower() in ("1", "true", "yes", "on")

    def _get_history_max_items(self) -> int:
        """Get history limit from environment or use default."""
        env_value = os.getenv(self.HISTORY_MAX_ITEMS_ENV)
        if env_value:
            try:
                return int(env_value)
            except ValueError:
                pass
        return self.DEFAULT_HISTORY_MAX_ITEMS

    def _get_attachment_dir(self) -> Optional[str]:
        """Get the last used attachment directory, if it still exists."""
        env_path = os.getenv(self.ATTACHMENT_DIR_ENV)
        if env_path:
            path = Path(os.path.expanduser(env_path))
            if path.is_dir():
                return str(path)
        return None

    def snapshot(self) -> "SessionSettings":
        """Freeze the current settings for a new session."""
        return SessionSettings(
            hide_notes=self.hide_notes,
            passwords_cleartext=self.passwords_cleartext,
            ssh_agent_enabled=self.ssh_agent_enabled,
            history_max_items=self.history_max_items,
            attachment_dir=self.attachment_dir,
        )


@dataclass(frozen=True)
class SessionSettings:
    """Configuration snapshot handed to a session when it opens.

    A session never re-reads global configuration after opening, so the
    modification test always runs against the same settings.
    """

    hide_notes: bool = False
    passwords_cleartext: bool = False
    ssh_agent_enabled: bool = False
    history_max_items: int = Config.DEFAULT_HISTORY_MAX_ITEMS
    attachment_dir: Optional[str] = None


config = Config()
