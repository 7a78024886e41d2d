"""
=============================================================================
FILE STORE
=============================================================================

Backing storage for the /files/ endpoints.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       FileStore CONTRACT                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read(name) → bytes                                                │
    │       FileNotFoundError   no such file            (→ 404)           │
    │       other OSError       anything else           (→ 500)           │
    │                                                                      │
    │   create(name, data)                                                │
    │       FileExistsError     name already taken      (→ 404)           │
    │       other OSError       anything else           (→ 500)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The store speaks only in OSError subclasses; the handlers decide which
status code each one becomes.

create() is atomic with respect to existence: it opens the file with
O_CREAT | O_EXCL (mode "xb"), so two concurrent creates of the same new
name can never both succeed.
If writing the data fails, the new file is removed again, so the name
stays free for a retry.

Files are stored and returned as raw bytes. No text codec is involved at
any point.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


class StorageUnavailable(OSError):
    """Raised by every operation when no files directory is configured."""


class FileStore(ABC):
    """
    Abstract base class for file storage.

    Implementations only need read() and create(). Tests substitute an
    in-memory store.
    """

    @abstractmethod
    def read(self, name: str) -> bytes:
        """Return the full contents of `name`."""

    @abstractmethod
    def create(self, name: str, data: bytes) -> None:
        """Store `data` under the new name `name`."""


class DirectoryFileStore(FileStore):
    """
    FileStore backed by a directory on the local filesystem.

    =========================================================================
    SECURITY
    =========================================================================

    Names come straight from the request target, so "../../etc/passwd"
    is a possible name. Every name is resolved (following ".." and
    symlinks) and must stay inside the root directory:

        read()   of an outside name raises FileNotFoundError  (→ 404)
        create() of an outside name raises PermissionError    (→ 500)

    =========================================================================
    """

    def __init__(self, directory: Optional[str]):
        """
        Args:
            directory: Root directory. None disables the store: every call
                       raises StorageUnavailable.
        """
        self.root = Path(directory).resolve() if directory is not None else None

    def _resolve(self, name: str) -> Optional[Path]:
        """
        Map a request name to a path inside the root.

        Returns:
            The resolved path, or None if it escapes the root.
        """
        if self.root is None:
            raise StorageUnavailable("No files directory configured")

        full_path = (self.root / name).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Path traversal attempt: {name!r}")
            return None
        return full_path

    def read(self, name: str) -> bytes:
        path = self._resolve(name)
        if path is None:
            raise FileNotFoundError(f"No such file: {name}")
        return path.read_bytes()

    def create(self, name: str, data: bytes) -> None:
        path = self._resolve(name)
        if path is None:
            raise PermissionError(f"Refusing to write outside the files directory: {name}")

        # "x" mode: O_CREAT | O_EXCL, fails with FileExistsError if present
        f = open(path, "xb")
        try:
            with f:
                f.write(data)
        except BaseException:
            # Never leave a partial file behind
            path.unlink(missing_ok=True)
            raise

        logger.debug(f"Stored {len(data)} bytes in {path}")
