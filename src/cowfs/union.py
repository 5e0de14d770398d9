"""UnionFile: a read-only merged view of a directory present in two layers."""

from __future__ import annotations

from ._fileobj import File
from .exceptions import BadFileError
from .fs import FileInfo

__all__ = ["UnionFile"]


class UnionFile(File):
    """Merge a base-side and an overlay-side handle for the same directory.

    Either half may be ``None`` (the base half usually is when the base
    layer could not open the path), but not both.  Listings are the union
    of both sides; an overlay entry shadows a base entry of the same name.
    Reads, seeks and stat go to the overlay half when present.
    """

    def __init__(self, base: File | None, layer: File | None):
        if base is None and layer is None:
            raise BadFileError("UnionFile needs at least one handle")
        super().__init__((layer or base).name)
        self.base = base
        self.layer = layer
        self._merged: list[FileInfo] | None = None

    def __repr__(self) -> str:
        return f"UnionFile(base={self.base!r}, layer={self.layer!r})"

    @property
    def _primary(self) -> File:
        return self.layer if self.layer is not None else self.base

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        return self._primary.read(size)

    def seek(self, offset: int, whence: int = 0) -> int:
        self._check_open()
        return self._primary.seek(offset, whence)

    def tell(self) -> int:
        self._check_open()
        return self._primary.tell()

    def write(self, data: bytes) -> int:
        raise BadFileError("Merged directory view is read-only", self._name)

    def truncate(self, size: int | None = None) -> int:
        raise BadFileError("Merged directory view is read-only", self._name)

    def stat(self) -> FileInfo:
        self._check_open()
        return self._primary.stat()

    def _list_entries(self) -> list[FileInfo]:
        if self._merged is None:
            merged: dict[str, FileInfo] = {}
            if self.base is not None:
                for fi in self.base.readdir():
                    merged[fi.name] = fi
            if self.layer is not None:
                for fi in self.layer.readdir():
                    merged[fi.name] = fi
            self._merged = sorted(merged.values(), key=lambda fi: fi.name)
        return self._merged

    def close(self) -> None:
        if self._closed:
            return
        try:
            if self.layer is not None:
                self.layer.close()
        finally:
            if self.base is not None:
                self.base.close()
            super().close()
