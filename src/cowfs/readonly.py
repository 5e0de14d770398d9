"""ReadOnlyFs: wrap any layer so it refuses mutations."""

from __future__ import annotations

from ._fileobj import File
from .exceptions import ReadOnlyFsError
from .fs import Fs, FileInfo, MUTATING_FLAGS

__all__ = ["ReadOnlyFs"]


class ReadOnlyFs(Fs):
    """Delegate reads to *source*; every mutator raises :class:`ReadOnlyFsError`."""

    def __init__(self, source: Fs):
        self._source = source

    @property
    def name(self) -> str:
        return "ReadOnlyFs"

    @property
    def source(self) -> Fs:
        return self._source

    def __repr__(self) -> str:
        return f"ReadOnlyFs({self._source!r})"

    def stat(self, path: str) -> FileInfo:
        return self._source.stat(path)

    def open(self, path: str) -> File:
        return self._source.open(path)

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> File:
        if flags & MUTATING_FLAGS:
            raise ReadOnlyFsError(path, "open for writing on")
        return self._source.open_file(path, flags, perm)

    def create(self, path: str) -> File:
        raise ReadOnlyFsError(path, "create on")

    def remove(self, path: str) -> None:
        raise ReadOnlyFsError(path, "remove from")

    def remove_all(self, path: str) -> None:
        raise ReadOnlyFsError(path, "remove from")

    def rename(self, old: str, new: str) -> None:
        raise ReadOnlyFsError(old, "rename on")

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        raise ReadOnlyFsError(path, "change times on")

    def chmod(self, path: str, mode: int) -> None:
        raise ReadOnlyFsError(path, "change mode on")

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        raise ReadOnlyFsError(path, "create directory on")

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        raise ReadOnlyFsError(path, "create directory on")
