"""User messages for entry edit sessions."""

# Headlines
HEADLINE_ADD = "{parent} > Add entry"
HEADLINE_EDIT = "{parent} > {title} > Edit entry"
HEADLINE_HISTORY = "{parent} > Entry history"

# Success messages
SUCCESS_KEY_ADDED = "Key added to agent."

# Error messages
ERROR_PASSWORD_MISMATCH = "Different passwords supplied."
ERROR_READ_ONLY = "History entries are read-only."
ERROR_SESSION_CLOSED = "No entry is being edited."
ERROR_OPEN_FILES = "Unable to open files:\n{errors}"
ERROR_SAVE_ATTACHMENT = "Unable to save the attachment:\n{error}"
ERROR_SAVE_ATTACHMENTS = "Unable to save the attachments:\n{errors}"
ERROR_OPEN_ATTACHMENTS = "Unable to open the attachments:\n{errors}"
ERROR_CREATE_DIRECTORY = "Unable to create the directory:\n{path}"
ERROR_NO_DIRECTORY = "No directory selected for the attachments."
ERROR_FILE_TOO_LARGE = "File too large to be a private key"
ERROR_OPEN_PRIVATE_KEY = "Failed to open private key"
ERROR_AGENT_NOT_RUNNING = "No SSH agent is running."
ERROR_CLIPBOARD = "Clipboard unavailable"
ERROR_FILE_ERROR = "{name} - {error}"

# Warnings
WARNING_SEQUENCE_SYNTAX = "Auto-type sequence '{sequence}' has invalid syntax."
WARNING_SEQUENCE_REPETITION = (
    "Auto-type sequence '{sequence}' repeats a key unusually often."
)

# Prompts
CONFIRM_DISCARD = "Entry has unsaved changes. Discard them?"
CONFIRM_OVERWRITE = (
    "Are you sure you want to overwrite existing file \"{name}\" with the attachment?"
)
