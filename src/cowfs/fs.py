"""Fs: the filesystem capability shared by every layer."""

from __future__ import annotations

import os
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._fileobj import File

__all__ = [
    "Fs", "FileInfo", "FileType", "MUTATING_FLAGS",
    "normalize_path", "is_dir", "exists", "read_file", "write_file", "read_dir",
]

# Any of these in an open_file() flag set means the caller intends to modify.
MUTATING_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC


class FileType(str, Enum):
    """Entry type reported by :attr:`FileInfo.file_type`.

    Members: ``FILE``, ``DIR``, ``LINK``.
    """
    FILE = "file"
    DIR = "dir"
    LINK = "link"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True, slots=True)
class FileInfo:
    """POSIX-like stat result for a path in any layer.

    Attributes:
        name: Base name of the entry (``"/"`` for the root).
        size: Size in bytes (0 for directories).
        mode: Full ``st_mode``: type bits plus permission bits.
        mtime: Modification time as POSIX epoch seconds.
    """

    name: str
    size: int
    mode: int
    mtime: float

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def perm(self) -> int:
        """Permission bits only (``mode & 0o7777``)."""
        return stat.S_IMODE(self.mode)

    @property
    def file_type(self) -> FileType:
        if stat.S_ISDIR(self.mode):
            return FileType.DIR
        if stat.S_ISLNK(self.mode):
            return FileType.LINK
        return FileType.FILE


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a layer path to absolute POSIX form.

    ``"a/b"``, ``"/a/b/"`` and ``"/a/./b"`` all become ``"/a/b"``; the
    empty string is the root.  ``..`` segments are rejected so no path
    can step outside its layer.
    """
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    segments = []
    for seg in path.split("/"):
        if seg in ("", "."):
            continue
        if seg == "..":
            raise ValueError(f"Invalid path segment: {seg!r}")
        segments.append(seg)
    return "/" + "/".join(segments)


def _parent(path: str) -> str:
    head = path.rsplit("/", 1)[0]
    return head or "/"


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[1] or "/"


class Fs(ABC):
    """The full read/write filesystem capability.

    The copy-on-write core consumes two of these, a base and an overlay,
    through exactly this interface.  Read-only implementations raise
    :class:`~cowfs.exceptions.ReadOnlyFsError` from the mutators.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier of the implementation, for diagnostics."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # --- Read operations ---

    @abstractmethod
    def stat(self, path: str) -> FileInfo:
        """Return a :class:`FileInfo` for *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
        """

    @abstractmethod
    def open(self, path: str) -> File:
        """Open *path* read-only.  Directories may be opened for listing."""

    @abstractmethod
    def open_file(self, path: str, flags: int, perm: int = 0o666) -> File:
        """Open *path* with ``os.O_*`` *flags*; *perm* applies on creation."""

    # --- Write operations ---

    @abstractmethod
    def create(self, path: str) -> File:
        """Create or truncate *path* and open it read/write."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file or an empty directory."""

    @abstractmethod
    def remove_all(self, path: str) -> None:
        """Remove *path* and everything below it."""

    @abstractmethod
    def rename(self, old: str, new: str) -> None:
        ...

    @abstractmethod
    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        ...

    @abstractmethod
    def chmod(self, path: str, mode: int) -> None:
        ...

    @abstractmethod
    def mkdir(self, path: str, perm: int = 0o777) -> None:
        ...

    @abstractmethod
    def makedirs(self, path: str, perm: int = 0o777) -> None:
        """Create *path* and any missing ancestors; no error if it is a directory."""


# ---------------------------------------------------------------------------
# Helpers working on any Fs
# ---------------------------------------------------------------------------

def is_dir(fs: Fs, path: str) -> bool:
    """Return True if *path* is a directory in *fs*.

    Lookup errors (including :exc:`FileNotFoundError`) propagate.
    """
    return fs.stat(path).is_dir


def exists(fs: Fs, path: str) -> bool:
    """Return True if *path* exists in *fs*."""
    try:
        fs.stat(path)
    except FileNotFoundError:
        return False
    return True


def read_file(fs: Fs, path: str) -> bytes:
    """Read the whole content of *path*."""
    with fs.open(path) as f:
        return f.read()


def write_file(fs: Fs, path: str, data: bytes, perm: int = 0o666) -> None:
    """Write *data* to *path*, creating or truncating it."""
    with fs.open_file(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, perm) as f:
        f.write(data)


def read_dir(fs: Fs, path: str) -> list[FileInfo]:
    """List the directory at *path*, sorted by name."""
    with fs.open(path) as f:
        entries = f.readdir()
    return sorted(entries, key=lambda fi: fi.name)
