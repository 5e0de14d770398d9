"""Copy a base-layer entry into the overlay, preserving mode and times."""

from __future__ import annotations

import errno
import logging
import stat

from .exceptions import CopyError
from .fs import Fs, _parent, exists, normalize_path

__all__ = ["copy_to_layer"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 16


def copy_to_layer(base: Fs, layer: Fs, path: str) -> None:
    """Materialize *path* from *base* into *layer*.

    Files are streamed in chunks and verified against the base size;
    directories are created (with ancestors).  Permission bits and
    timestamps are copied in both cases.  If anything fails once the
    overlay file exists, the partial copy is removed before re-raising.

    Raises:
        CopyError: If fewer bytes were copied than the base reports.
        OSError: With ``EOPNOTSUPP`` if *path* is a symbolic link.
    """
    path = normalize_path(path)
    info = base.stat(path)

    if stat.S_ISLNK(info.mode):
        raise OSError(errno.EOPNOTSUPP, "Cannot copy a symbolic link into the overlay", path)

    if info.is_dir:
        layer.makedirs(path, info.perm)
        layer.chmod(path, info.perm)
        layer.chtimes(path, info.mtime, info.mtime)
        logger.debug("copied directory %s into %s", path, layer.name)
        return

    parent = _parent(path)
    if not exists(layer, parent):
        layer.makedirs(parent, 0o777)

    with base.open(path) as src:
        dst = layer.create(path)
        try:
            copied = 0
            with dst:
                while True:
                    chunk = src.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    dst.write(chunk)
                    copied += len(chunk)
            if copied != info.size:
                raise CopyError(path, copied, info.size)
            layer.chmod(path, info.perm)
            layer.chtimes(path, info.mtime, info.mtime)
        except Exception:
            try:
                layer.remove(path)
            except OSError as exc:
                logger.warning("could not remove partial copy of %s: %s", path, exc)
            raise
    logger.debug("copied %s (%d bytes) into %s", path, copied, layer.name)
