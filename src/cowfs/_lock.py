"""Advisory overlay lock: serializes classify-then-act sequences across threads and processes."""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager

# One threading lock per overlay directory, keyed by (st_dev, st_ino) when available
_thread_locks: dict[tuple[int, int] | str, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def _lock_key(overlay_dir: str) -> tuple[int, int] | str:
    real = os.path.realpath(overlay_dir)
    try:
        st = os.stat(real)
    except OSError:
        return os.path.normcase(real)
    if st.st_ino == 0:
        return os.path.normcase(real)
    return (st.st_dev, st.st_ino)


def _thread_lock(overlay_dir: str) -> threading.Lock:
    key = _lock_key(overlay_dir)
    with _thread_locks_guard:
        return _thread_locks.setdefault(key, threading.Lock())


def lock_path(overlay_dir: str | os.PathLike[str]) -> str:
    """Return the lock file path, a sibling of the overlay directory."""
    return os.path.normpath(os.fspath(overlay_dir)) + ".lock"


if os.name == "nt":
    import msvcrt

    def _open_lock_file(path: str) -> int:
        fd = os.open(path, os.O_CREAT | os.O_RDWR)
        os.set_inheritable(fd, False)
        return fd

    def _acquire(fd: int) -> None:
        msvcrt.locking(fd, msvcrt.LK_LOCK, 1)

    def _release(fd: int) -> None:
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _open_lock_file(path: str) -> int:
        return os.open(path, os.O_CREAT | os.O_RDWR | os.O_CLOEXEC)

    def _acquire(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX)

    def _release(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)


@contextmanager
def overlay_lock(overlay_dir: str | os.PathLike[str]):
    """Hold an exclusive lock on *overlay_dir* for the duration of the block.

    The lock is advisory: it only excludes other holders of the same lock,
    not writers that touch the overlay directly.
    """
    overlay_dir = os.fspath(overlay_dir)
    with _thread_lock(overlay_dir):
        fd = _open_lock_file(lock_path(overlay_dir))
        try:
            _acquire(fd)
            try:
                yield
            finally:
                _release(fd)
        finally:
            os.close(fd)
