"""CopyOnWriteFs: a read-only base layer with a writable overlay on top.

Every mutation goes to the overlay.  Changing an entry that exists only
in the base (including :meth:`~CopyOnWriteFs.chtimes` and
:meth:`~CopyOnWriteFs.chmod`) first copies it into the overlay.  The base
is never written.

Each operation classifies its path afresh against both layers; nothing is
cached, and classify-then-act is not atomic.  Callers sharing layers
across threads or processes must serialize access themselves.
"""

from __future__ import annotations

import logging

from ._fileobj import File
from .copy import copy_to_layer
from .exceptions import already_exists, not_found, permission_denied
from .fs import Fs, FileInfo, MUTATING_FLAGS, is_dir
from .union import UnionFile

__all__ = ["CopyOnWriteFs"]

logger = logging.getLogger(__name__)


class CopyOnWriteFs(Fs):
    """Union of *base* (never mutated) and *layer* (receives all writes)."""

    def __init__(self, base: Fs, layer: Fs):
        self._base = base
        self._layer = layer

    @property
    def name(self) -> str:
        return "CopyOnWriteFs"

    @property
    def base(self) -> Fs:
        return self._base

    @property
    def layer(self) -> Fs:
        return self._layer

    def __repr__(self) -> str:
        return f"CopyOnWriteFs(base={self._base!r}, layer={self._layer!r})"

    def _is_base_only(self, path: str) -> bool:
        """Return True if *path* is absent from the overlay.

        The base is consulted only then, and its lookup error, including
        :exc:`FileNotFoundError` for a path in neither layer, propagates.
        Overlay errors other than not-found propagate as well.
        """
        try:
            self._layer.stat(path)
            return False
        except FileNotFoundError:
            pass
        self._base.stat(path)
        return True

    def _copy_to_layer(self, path: str) -> None:
        logger.debug("materializing %s from %s", path, self._base.name)
        copy_to_layer(self._base, self._layer, path)

    # --- Read operations ---

    def stat(self, path: str) -> FileInfo:
        try:
            return self._layer.stat(path)
        except FileNotFoundError:
            return self._base.stat(path)

    def open(self, path: str) -> File:
        """Open *path* read-only.

        A directory present in the overlay is returned as a
        :class:`~cowfs.union.UnionFile` whose listing also includes the
        base directory's entries, when the base has one.
        """
        if self._is_base_only(path):
            return self._base.open(path)

        if not is_dir(self._layer, path):
            return self._layer.open(path)

        try:
            if is_dir(self._base, path):
                bfile = self._base.open(path)
            else:
                logger.debug("overlay directory %s shadows a base file", path)
                bfile = None
        except OSError as exc:
            logger.debug("no base half for directory %s: %s", path, exc)
            bfile = None
        try:
            lfile = self._layer.open(path)
        except OSError:
            if bfile is None:
                raise
            lfile = None
        return UnionFile(bfile, lfile)

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> File:
        """Open *path* with ``os.O_*`` *flags*.

        Any write, append, create or truncate flag sends the open to the
        overlay, copying a base-only file there first.  A path missing from
        both layers is created in the overlay when ``O_CREAT`` is given.
        """
        mutating = flags & MUTATING_FLAGS
        try:
            base_only = self._is_base_only(path)
        except FileNotFoundError:
            if not mutating:
                raise
            base_only = False

        if mutating:
            if base_only:
                self._copy_to_layer(path)
            return self._layer.open_file(path, flags, perm)
        if base_only:
            return self._base.open_file(path, flags, perm)
        return self._layer.open_file(path, flags, perm)

    # --- Write operations ---

    def create(self, path: str) -> File:
        try:
            base_only = self._is_base_only(path)
        except FileNotFoundError:
            base_only = False
        if base_only:
            self._copy_to_layer(path)
        return self._layer.create(path)

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        if self._is_base_only(path):
            self._copy_to_layer(path)
        self._layer.chtimes(path, atime, mtime)

    def chmod(self, path: str, mode: int) -> None:
        if self._is_base_only(path):
            self._copy_to_layer(path)
        self._layer.chmod(path, mode)

    def rename(self, old: str, new: str) -> None:
        """Rename within the overlay.

        Raises:
            PermissionError: If *old* exists only in the base.
        """
        if self._is_base_only(old):
            logger.debug("refusing to rename base-only %s", old)
            raise permission_denied(old, "Cannot rename a path that exists only in the base layer")
        self._layer.rename(old, new)

    def remove(self, path: str) -> None:
        """Remove *path* from the overlay.

        A path in both layers loses only its overlay copy; the base entry
        becomes visible again.

        Raises:
            PermissionError: If *path* exists only in the base.
            FileNotFoundError: If *path* is in neither layer.
        """
        try:
            self._layer.remove(path)
        except FileNotFoundError:
            self._refuse_base_removal(path)

    def remove_all(self, path: str) -> None:
        """Like :meth:`remove`, for whole subtrees."""
        try:
            self._layer.remove_all(path)
        except FileNotFoundError:
            self._refuse_base_removal(path)

    def _refuse_base_removal(self, path: str) -> None:
        try:
            self._base.stat(path)
        except OSError:
            raise not_found(path) from None
        logger.debug("refusing to remove base-only %s", path)
        raise permission_denied(path, "Cannot remove a path that exists only in the base layer")

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        """Create a directory in the overlay.

        Delegates to the overlay's recursive creation, so missing overlay
        ancestors are created too.

        Raises:
            FileExistsError: If *path* is already a directory in the base.
        """
        self._make_dir(path, perm)

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        self._make_dir(path, perm)

    def _make_dir(self, path: str, perm: int) -> None:
        try:
            base_dir = is_dir(self._base, path)
        except OSError:
            self._layer.makedirs(path, perm)
            return
        if base_dir:
            logger.debug("refusing to shadow base directory %s", path)
            raise already_exists(path)
        self._layer.makedirs(path, perm)
