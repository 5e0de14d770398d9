"""MemFs: an in-memory filesystem layer."""

from __future__ import annotations

import errno
import os
import stat
import threading
import time
from dataclasses import dataclass, field

from ._fileobj import File
from .exceptions import already_exists, not_found
from .fs import Fs, FileInfo, _basename, _parent, normalize_path

__all__ = ["MemFs", "MemFile"]

_ACCMODE = os.O_RDONLY | os.O_WRONLY | os.O_RDWR


@dataclass
class _Entry:
    mode: int
    mtime: float
    atime: float
    data: bytearray = field(default_factory=bytearray)

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)


class MemFs(Fs):
    """A thread-safe filesystem held entirely in memory.

    Files created through :meth:`open_file` or :meth:`rename` get their
    missing ancestor directories created implicitly.  :meth:`mkdir`, like
    :func:`os.mkdir`, needs the parent to exist.
    """

    def __init__(self):
        self._lock = threading.RLock()
        now = time.time()
        self._entries: dict[str, _Entry] = {"/": _Entry(stat.S_IFDIR | 0o755, now, now)}

    @property
    def name(self) -> str:
        return "MemFs"

    def __repr__(self) -> str:
        return f"MemFs(entries={len(self._entries)})"

    # --- Internals ---

    def _get(self, path: str) -> _Entry:
        entry = self._entries.get(path)
        if entry is None:
            raise not_found(path)
        return entry

    def _info(self, path: str, entry: _Entry) -> FileInfo:
        size = 0 if entry.is_dir else len(entry.data)
        return FileInfo(name=_basename(path), size=size, mode=entry.mode, mtime=entry.mtime)

    def _children(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return [p for p in self._entries
                if p != "/" and p.startswith(prefix) and "/" not in p[len(prefix):]]

    def _subtree(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return [p for p in self._entries if p == path or p.startswith(prefix)]

    def _ensure_dir(self, path: str, perm: int) -> None:
        entry = self._entries.get(path)
        if entry is not None:
            if not entry.is_dir:
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), path)
            return
        self._ensure_dir(_parent(path), perm)
        now = time.time()
        self._entries[path] = _Entry(stat.S_IFDIR | (perm & 0o7777), now, now)

    # --- Read operations ---

    def stat(self, path: str) -> FileInfo:
        path = normalize_path(path)
        with self._lock:
            return self._info(path, self._get(path))

    def open(self, path: str) -> MemFile:
        return self.open_file(path, os.O_RDONLY)

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> MemFile:
        path = normalize_path(path)
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                if not flags & os.O_CREAT:
                    raise not_found(path)
                self._ensure_dir(_parent(path), 0o777)
                now = time.time()
                entry = _Entry(stat.S_IFREG | (perm & 0o7777), now, now)
                self._entries[path] = entry
            elif flags & os.O_CREAT and flags & os.O_EXCL:
                raise already_exists(path)
            if entry.is_dir and flags & _ACCMODE != os.O_RDONLY:
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
            if flags & os.O_TRUNC and flags & _ACCMODE != os.O_RDONLY:
                del entry.data[:]
                entry.mtime = time.time()
            return MemFile(self, path, entry, flags)

    # --- Write operations ---

    def create(self, path: str) -> MemFile:
        return self.open_file(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666)

    def remove(self, path: str) -> None:
        path = normalize_path(path)
        with self._lock:
            entry = self._get(path)
            if path == "/":
                raise PermissionError(errno.EPERM, "Cannot remove root", path)
            if entry.is_dir and self._children(path):
                raise OSError(errno.ENOTEMPTY, os.strerror(errno.ENOTEMPTY), path)
            del self._entries[path]

    def remove_all(self, path: str) -> None:
        path = normalize_path(path)
        with self._lock:
            self._get(path)
            if path == "/":
                raise PermissionError(errno.EPERM, "Cannot remove root", path)
            for p in self._subtree(path):
                del self._entries[p]

    def rename(self, old: str, new: str) -> None:
        old = normalize_path(old)
        new = normalize_path(new)
        with self._lock:
            entry = self._get(old)
            if old == new:
                return
            if old == "/" or new.startswith(old.rstrip("/") + "/"):
                raise OSError(errno.EINVAL, "Cannot move a directory into itself", new)
            target = self._entries.get(new)
            if target is not None:
                if target.is_dir and not entry.is_dir:
                    raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), new)
                if not target.is_dir and entry.is_dir:
                    raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), new)
                if target.is_dir and self._children(new):
                    raise OSError(errno.ENOTEMPTY, os.strerror(errno.ENOTEMPTY), new)
                del self._entries[new]
            self._ensure_dir(_parent(new), 0o777)
            for p in self._subtree(old):
                self._entries[new + p[len(old):]] = self._entries.pop(p)

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        path = normalize_path(path)
        with self._lock:
            entry = self._get(path)
            entry.atime = atime
            entry.mtime = mtime

    def chmod(self, path: str, mode: int) -> None:
        path = normalize_path(path)
        with self._lock:
            entry = self._get(path)
            entry.mode = stat.S_IFMT(entry.mode) | stat.S_IMODE(mode)

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        path = normalize_path(path)
        with self._lock:
            if path in self._entries:
                raise already_exists(path)
            parent = _parent(path)
            if not self._get(parent).is_dir:
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), parent)
            now = time.time()
            self._entries[path] = _Entry(stat.S_IFDIR | (perm & 0o7777), now, now)

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        path = normalize_path(path)
        with self._lock:
            entry = self._entries.get(path)
            if entry is not None and not entry.is_dir:
                raise already_exists(path)
            self._ensure_dir(path, perm)


class MemFile(File):
    """Handle on a :class:`MemFs` entry; writes land in the shared entry."""

    def __init__(self, fs: MemFs, path: str, entry: _Entry, flags: int):
        super().__init__(path)
        self._fs = fs
        self._entry = entry
        self._flags = flags
        self._pos = 0
        self._listing: list[FileInfo] | None = None

    def readable(self) -> bool:
        return self._flags & _ACCMODE in (os.O_RDONLY, os.O_RDWR)

    def writable(self) -> bool:
        return self._flags & _ACCMODE in (os.O_WRONLY, os.O_RDWR)

    def seekable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if self._entry.is_dir:
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), self._name)
        if not self.readable():
            raise self._unsupported("read on a write-only handle")
        with self._fs._lock:
            data = self._entry.data
            end = len(data) if size is None or size < 0 else min(self._pos + size, len(data))
            chunk = bytes(data[self._pos:end])
            self._pos = max(self._pos, end)
            self._entry.atime = time.time()
        return chunk

    def write(self, data: bytes) -> int:
        self._check_open()
        if not self.writable():
            raise self._unsupported("write on a read-only handle")
        with self._fs._lock:
            buf = self._entry.data
            if self._flags & os.O_APPEND:
                self._pos = len(buf)
            if self._pos > len(buf):
                buf.extend(b"\0" * (self._pos - len(buf)))
            buf[self._pos:self._pos + len(data)] = data
            self._pos += len(data)
            self._entry.mtime = time.time()
        return len(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        self._check_open()
        if whence == os.SEEK_SET:
            pos = offset
        elif whence == os.SEEK_CUR:
            pos = self._pos + offset
        elif whence == os.SEEK_END:
            pos = len(self._entry.data) + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if pos < 0:
            raise OSError(errno.EINVAL, "Negative seek position", self._name)
        self._pos = pos
        return pos

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def truncate(self, size: int | None = None) -> int:
        self._check_open()
        if not self.writable():
            raise self._unsupported("truncate on a read-only handle")
        size = self._pos if size is None else size
        with self._fs._lock:
            buf = self._entry.data
            if size < len(buf):
                del buf[size:]
            else:
                buf.extend(b"\0" * (size - len(buf)))
            self._entry.mtime = time.time()
        return size

    def stat(self) -> FileInfo:
        self._check_open()
        with self._fs._lock:
            return self._fs._info(self._name, self._entry)

    def _list_entries(self) -> list[FileInfo]:
        if not self._entry.is_dir:
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), self._name)
        if self._listing is None:
            with self._fs._lock:
                self._listing = sorted(
                    (self._fs._info(p, self._fs._entries[p]) for p in self._fs._children(self._name)),
                    key=lambda fi: fi.name,
                )
        return self._listing
