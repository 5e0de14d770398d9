"""File-like handles returned by the layers."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from .exceptions import BadFileError

if TYPE_CHECKING:
    from .fs import FileInfo


class File:
    """Base handle.  Operations a subclass does not support raise
    :class:`~cowfs.exceptions.BadFileError`.

    Directory listings are consumed incrementally: ``readdir(n)`` with
    ``n > 0`` returns at most *n* entries and ``[]`` once exhausted;
    ``readdir()`` returns whatever is left.
    """

    def __init__(self, name: str):
        self._name = name
        self._closed = False
        self._dir_offset = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed file.")

    def _unsupported(self, op: str) -> BadFileError:
        return BadFileError(f"{type(self).__name__} does not support {op}", self._name)

    def read(self, size: int = -1) -> bytes:
        raise self._unsupported("read")

    def write(self, data: bytes) -> int:
        raise self._unsupported("write")

    def seek(self, offset: int, whence: int = 0) -> int:
        raise self._unsupported("seek")

    def tell(self) -> int:
        raise self._unsupported("tell")

    def truncate(self, size: int | None = None) -> int:
        raise self._unsupported("truncate")

    def stat(self) -> FileInfo:
        raise self._unsupported("stat")

    def _list_entries(self) -> list[FileInfo]:
        raise self._unsupported("readdir")

    def readdir(self, count: int = -1) -> list[FileInfo]:
        self._check_open()
        entries = self._list_entries()
        start = self._dir_offset
        end = len(entries) if count <= 0 else min(start + count, len(entries))
        self._dir_offset = end
        return entries[start:end]

    def readdirnames(self, count: int = -1) -> list[str]:
        return [fi.name for fi in self.readdir(count)]

    def close(self) -> None:
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class ReadableFile(File):
    """Read-only handle over an immutable snapshot of an entry.

    Files carry their *data*; directories carry their child *entries*.
    """

    def __init__(self, name: str, info: FileInfo, data: bytes = b"",
                 entries: list[FileInfo] | None = None):
        super().__init__(name)
        self._info = info
        self._buf = io.BytesIO(data)
        self._entries = sorted(entries, key=lambda fi: fi.name) if entries is not None else None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if self._info.is_dir:
            raise IsADirectoryError(self._name)
        return self._buf.read(size)

    def seek(self, offset: int, whence: int = 0) -> int:
        self._check_open()
        return self._buf.seek(offset, whence)

    def tell(self) -> int:
        self._check_open()
        return self._buf.tell()

    def stat(self) -> FileInfo:
        self._check_open()
        return self._info

    def _list_entries(self) -> list[FileInfo]:
        if self._entries is None:
            raise NotADirectoryError(self._name)
        return self._entries
