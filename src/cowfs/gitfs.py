"""GitTreeFs: a read-only layer over one committed git tree."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from dulwich.repo import Repo

from ._fileobj import ReadableFile
from .exceptions import ReadOnlyFsError, not_found
from .fs import Fs, FileInfo, MUTATING_FLAGS, normalize_path
from .tree import (
    GIT_FILEMODE_TREE,
    TreeEntry,
    blob_data,
    blob_size,
    entry_at_path,
    list_entries,
    resolve_commit,
)

__all__ = ["GitTreeFs"]


class GitTreeFs(Fs):
    """An immutable snapshot of the tree of one commit.

    Every entry reports the commit time as its ``mtime``.  Because the
    snapshot never changes it makes a natural base layer: pin a commit and
    put a writable overlay on top.
    """

    def __init__(self, repo: Repo, commit_sha: bytes, ref_name: str | None = None):
        self._repo = repo
        commit = repo[commit_sha]
        self._commit_sha = commit.id
        self._tree_sha = commit.tree
        self._mtime = float(commit.commit_time)
        self._ref_name = ref_name

    @classmethod
    def from_repo(cls, path: str | os.PathLike[str], ref: str = "HEAD") -> GitTreeFs:
        """Open the repository at *path* (bare or not) and pin *ref*.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If *ref* cannot be resolved to a commit.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Repository not found: {path}")
        repo = Repo(str(path))
        try:
            commit = resolve_commit(repo, ref)
        except ValueError:
            repo.close()
            raise
        return cls(repo, commit.id, ref_name=ref)

    @property
    def name(self) -> str:
        return "GitTreeFs"

    @property
    def commit_hash(self) -> str:
        """The 40-character hex SHA of the pinned commit."""
        return self._commit_sha.decode()

    @property
    def tree_hash(self) -> str:
        return self._tree_sha.decode()

    @property
    def ref_name(self) -> str | None:
        return self._ref_name

    def __repr__(self) -> str:
        parts = []
        if self._ref_name:
            parts.append(f"ref_name={self._ref_name!r}")
        parts.append(f"commit={self.commit_hash[:7]}")
        return f"GitTreeFs({', '.join(parts)})"

    def close(self) -> None:
        """Release the repository's open pack files."""
        self._repo.close()

    # --- Internals ---

    def _lookup(self, path: str) -> TreeEntry:
        if path == "/":
            return TreeEntry("/", GIT_FILEMODE_TREE, self._tree_sha)
        entry = entry_at_path(self._repo, self._tree_sha, path)
        if entry is None:
            raise not_found(path)
        return entry

    def _info(self, entry: TreeEntry) -> FileInfo:
        st_mode = entry.st_mode
        size = 0 if stat.S_ISDIR(st_mode) else blob_size(self._repo, entry.sha)
        return FileInfo(name=entry.name, size=size, mode=st_mode, mtime=self._mtime)

    # --- Read operations ---

    def stat(self, path: str) -> FileInfo:
        return self._info(self._lookup(normalize_path(path)))

    def open(self, path: str) -> ReadableFile:
        path = normalize_path(path)
        entry = self._lookup(path)
        info = self._info(entry)
        if info.is_dir:
            children = [self._info(e) for e in list_entries(self._repo, entry.sha)]
            return ReadableFile(path, info, entries=children)
        return ReadableFile(path, info, data=blob_data(self._repo, entry.sha))

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> ReadableFile:
        if flags & MUTATING_FLAGS:
            raise ReadOnlyFsError(path, "open for writing on")
        return self.open(path)

    # --- Write operations (refused) ---

    def create(self, path: str) -> ReadableFile:
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
