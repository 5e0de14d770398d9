"""OsFs: a layer backed by a directory on the host filesystem."""

from __future__ import annotations

import errno
import os
import shutil
import stat
from pathlib import Path

from ._fileobj import File
from .fs import Fs, FileInfo, _basename, normalize_path

__all__ = ["OsFs", "OsFile"]

_ACCMODE = os.O_RDONLY | os.O_WRONLY | os.O_RDWR


def _info_from_stat(name: str, st: os.stat_result) -> FileInfo:
    size = 0 if stat.S_ISDIR(st.st_mode) else st.st_size
    return FileInfo(name=name, size=size, mode=st.st_mode, mtime=st.st_mtime)


class OsFs(Fs):
    """Expose the directory *root* as a layer.

    Layer paths are resolved below *root*; ``..`` is rejected by
    :func:`~cowfs.fs.normalize_path`, so nothing outside *root* is reachable.
    """

    def __init__(self, root: str | os.PathLike[str], *, create: bool = True):
        root = Path(root)
        if create:
            root.mkdir(parents=True, exist_ok=True)
        elif not root.is_dir():
            raise FileNotFoundError(f"Layer root not found: {root}")
        self._root = root.resolve()

    @property
    def name(self) -> str:
        return "OsFs"

    @property
    def root(self) -> Path:
        return self._root

    def __repr__(self) -> str:
        return f"OsFs({str(self._root)!r})"

    def real_path(self, path: str) -> str:
        """Return the host path backing layer *path*."""
        rel = normalize_path(path).lstrip("/")
        return os.path.join(self._root, rel) if rel else str(self._root)

    # --- Read operations ---

    def stat(self, path: str) -> FileInfo:
        path = normalize_path(path)
        return _info_from_stat(_basename(path), os.stat(self.real_path(path)))

    def open(self, path: str) -> OsFile:
        return self.open_file(path, os.O_RDONLY)

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> OsFile:
        path = normalize_path(path)
        real = self.real_path(path)
        if flags & _ACCMODE == os.O_RDONLY and not flags & os.O_CREAT and os.path.isdir(real):
            return OsFile(path, real, None)
        fd = os.open(real, flags | getattr(os, "O_CLOEXEC", 0) | getattr(os, "O_BINARY", 0), perm)
        return OsFile(path, real, fd, flags)

    # --- Write operations ---

    def create(self, path: str) -> OsFile:
        return self.open_file(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666)

    def remove(self, path: str) -> None:
        real = self.real_path(path)
        if stat.S_ISDIR(os.lstat(real).st_mode):
            os.rmdir(real)
        else:
            os.unlink(real)

    def remove_all(self, path: str) -> None:
        real = self.real_path(path)
        if real == str(self._root):
            raise PermissionError(errno.EPERM, "Cannot remove layer root", path)
        if stat.S_ISDIR(os.lstat(real).st_mode):
            shutil.rmtree(real)
        else:
            os.unlink(real)

    def rename(self, old: str, new: str) -> None:
        os.replace(self.real_path(old), self.real_path(new))

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        os.utime(self.real_path(path), (atime, mtime))

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(self.real_path(path), stat.S_IMODE(mode))

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        os.mkdir(self.real_path(path), perm)

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        os.makedirs(self.real_path(path), perm, exist_ok=True)


class OsFile(File):
    """Handle over a host file descriptor, or a host directory listing."""

    def __init__(self, path: str, real: str, fd: int | None, flags: int = os.O_RDONLY):
        super().__init__(path)
        self._real = real
        self._fd = fd
        self._flags = flags
        self._listing: list[FileInfo] | None = None

    def readable(self) -> bool:
        return self._fd is not None and self._flags & _ACCMODE in (os.O_RDONLY, os.O_RDWR)

    def writable(self) -> bool:
        return self._fd is not None and self._flags & _ACCMODE in (os.O_WRONLY, os.O_RDWR)

    def seekable(self) -> bool:
        return self._fd is not None

    def _require_fd(self) -> int:
        self._check_open()
        if self._fd is None:
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), self._name)
        return self._fd

    def read(self, size: int = -1) -> bytes:
        fd = self._require_fd()
        if size is not None and size >= 0:
            return os.read(fd, size)
        chunks = []
        while True:
            chunk = os.read(fd, 1 << 16)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def write(self, data: bytes) -> int:
        fd = self._require_fd()
        view = memoryview(data)
        total = 0
        while total < len(view):
            total += os.write(fd, view[total:])
        return total

    def seek(self, offset: int, whence: int = 0) -> int:
        return os.lseek(self._require_fd(), offset, whence)

    def tell(self) -> int:
        return os.lseek(self._require_fd(), 0, os.SEEK_CUR)

    def truncate(self, size: int | None = None) -> int:
        fd = self._require_fd()
        size = self.tell() if size is None else size
        os.ftruncate(fd, size)
        return size

    def stat(self) -> FileInfo:
        self._check_open()
        st = os.fstat(self._fd) if self._fd is not None else os.stat(self._real)
        return _info_from_stat(_basename(self._name), st)

    def _list_entries(self) -> list[FileInfo]:
        if self._fd is not None:
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), self._name)
        if self._listing is None:
            with os.scandir(self._real) as it:
                self._listing = sorted(
                    (_info_from_stat(e.name, e.stat()) for e in it),
                    key=lambda fi: fi.name,
                )
        return self._listing

    def close(self) -> None:
        if not self._closed and self._fd is not None:
            os.close(self._fd)
        super().close()
