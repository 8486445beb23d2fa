"""Binary attachments of an entry and the file I/O around them."""

import atexit
import base64
import hashlib
import logging
import os
import tempfile
from typing import Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class AttachmentError(Exception):
    """Base exception for attachment file operations."""

    pass


class AttachmentReadError(AttachmentError):
    """Raised when a file cannot be read into an attachment."""

    pass


class AttachmentWriteError(AttachmentError):
    """Raised when an attachment cannot be written to disk."""

    pass


class AttachmentTooLargeError(AttachmentError):
    """Raised when a file exceeds the allowed size before it is read."""

    pass


class EntryAttachments:
    """Mapping of filename to binary payload. No ordering guarantee."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    def set(self, filename: str, data: bytes) -> None:
        """Insert or overwrite an attachment."""
        self._data[filename] = bytes(data)

    def remove(self, filenames: Union[str, Iterable[str]]) -> None:
        """Remove one attachment or a list of them; unknown names are ignored."""
        if isinstance(filenames, str):
            filenames = [filenames]
        for name in filenames:
            self._data.pop(name, None)

    def value(self, filename: str) -> bytes:
        return self._data.get(filename, b"")

    def keys(self) -> List[str]:
        return sorted(self._data)

    def content_hash(self, filename: str) -> str:
        return hashlib.sha256(self.value(filename)).hexdigest()

    def digests(self) -> Dict[str, str]:
        """Map every filename to the SHA-256 digest of its payload."""
        return {name: hashlib.sha256(data).hexdigest() for name, data in self._data.items()}

    def copy_from(self, other: "EntryAttachments") -> None:
        """Replace all attachments with the contents of ``other``."""
        if other is self:
            return
        self._data = dict(other._data)

    def clear(self) -> None:
        self._data.clear()

    def to_dict(self) -> dict:
        return {
            name: base64.b64encode(data).decode("ascii")
            for name, data in self._data.items()
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EntryAttachments":
        attachments = cls()
        for name, encoded in data.items():
            attachments.set(name, base64.b64decode(encoded))
        return attachments

    def __contains__(self, filename: object) -> bool:
        return filename in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntryAttachments):
            return NotImplemented
        if self._data.keys() != other._data.keys():
            return False
        # Payloads can be large, compare digests
        return self.digests() == other.digests()

    def __repr__(self) -> str:
        return f"EntryAttachments({self.keys()!r})"


def read_attachment_file(path: str, max_size: Optional[int] = None) -> bytes:
    """Read a file for use as an attachment.

    Raises:
        AttachmentTooLargeError: If ``max_size`` is given and the file is larger
        AttachmentReadError: If the file cannot be read
    """
    try:
        if max_size is not None and os.path.getsize(path) > max_size:
            raise AttachmentTooLargeError(
                f"{os.path.basename(path)} is larger than {max_size} bytes"
            )
        with open(path, "rb") as f:
            return f.read()
    except AttachmentTooLargeError:
        raise
    except OSError as e:
        raise AttachmentReadError(e.strerror or str(e)) from e


def write_attachment_file(path: str, data: bytes) -> None:
    """Write attachment bytes to ``path``.

    Raises:
        AttachmentWriteError: If the file cannot be written
    """
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise AttachmentWriteError(e.strerror or str(e)) from e


class AttachmentPreviews:
    """Temporary files written so attachments can be opened externally.

    Files stay on disk until ``cleanup()`` runs, at the latest when the
    interpreter exits.
    """

    def __init__(self) -> None:
        self._paths: List[str] = []
        atexit.register(self.cleanup)

    @property
    def paths(self) -> List[str]:
        return list(self._paths)

    def write(self, filename: str, data: bytes) -> str:
        """Write ``data`` to a fresh temp file ending in ``filename``.

        Raises:
            AttachmentWriteError: If the temp file cannot be written
        """
        try:
            fd, path = tempfile.mkstemp(suffix=f".{filename}")
        except OSError as e:
            raise AttachmentWriteError(e.strerror or str(e)) from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
        except OSError as e:
            self._remove(path)
            raise AttachmentWriteError(e.strerror or str(e)) from e

        self._paths.append(path)
        logger.debug(f"Wrote attachment preview {path}")
        return path

    def _remove(self, path: str) -> None:
        try:
            if os.path.exists(path):
                os.unlink(path)
        except OSError as e:
            logger.warning(f"Could not remove attachment preview {path}: {e}")

    def cleanup(self) -> None:
        """Delete every preview file written so far."""
        for path in self._paths:
            self._remove(path)
        self._paths.clear()
