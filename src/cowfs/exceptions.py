"""Exceptions for cowfs.

Missing entries, refusals and conflicts use Python's builtin
:exc:`FileNotFoundError`, :exc:`PermissionError` and :exc:`FileExistsError`.
The classes below cover the cases those do not name.
"""

from __future__ import annotations

import errno
import os


def _oserror(cls: type[OSError], code: int, path: str | None = None, msg: str | None = None) -> OSError:
    """Build *cls* with ``errno``, ``strerror`` and ``filename`` populated."""
    strerror = msg or os.strerror(code)
    if path is None:
        return cls(code, strerror)
    return cls(code, strerror, path)


def not_found(path: str) -> FileNotFoundError:
    return _oserror(FileNotFoundError, errno.ENOENT, path)


def permission_denied(path: str, msg: str | None = None) -> PermissionError:
    return _oserror(PermissionError, errno.EPERM, path, msg)


def already_exists(path: str) -> FileExistsError:
    return _oserror(FileExistsError, errno.EEXIST, path)


class ReadOnlyFsError(PermissionError):
    """Raised when a mutating operation reaches a read-only layer."""

    def __init__(self, path: str, verb: str = "modify"):
        super().__init__(errno.EPERM, f"Cannot {verb} read-only filesystem", path)


class CopyError(OSError):
    """Raised when copying an entry into the overlay produced a short copy."""

    def __init__(self, path: str, copied: int, expected: int):
        super().__init__(
            errno.EIO,
            f"Short copy into overlay: {copied} of {expected} bytes",
            path,
        )
        self.copied = copied
        self.expected = expected


class BadFileError(OSError):
    """Raised for an operation a file handle cannot perform."""

    def __init__(self, msg: str = "Bad file descriptor", path: str | None = None):
        if path is None:
            super().__init__(errno.EBADF, msg)
        else:
            super().__init__(errno.EBADF, msg, path)
