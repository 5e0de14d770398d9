"""Read helpers over committed git trees, built on dulwich objects."""

from __future__ import annotations

import stat
from typing import NamedTuple

from dulwich.objects import Blob, Commit, Tag, Tree
from dulwich.repo import Repo

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644
GIT_FILEMODE_BLOB_EXECUTABLE = 0o100755
GIT_FILEMODE_LINK = 0o120000
GIT_FILEMODE_COMMIT = 0o160000  # submodule; no object in this repo

_HEX = frozenset(b"0123456789abcdef")


class TreeEntry(NamedTuple):
    """One entry of a git tree: *name*, git *filemode* and object *sha*."""

    name: str
    filemode: int
    sha: bytes

    @property
    def st_mode(self) -> int:
        return st_mode_from_filemode(self.filemode)


def st_mode_from_filemode(filemode: int) -> int:
    """Map a git filemode onto a POSIX ``st_mode``.

    Trees carry no permission bits in git, so directories report ``0o755``.
    """
    if filemode == GIT_FILEMODE_TREE:
        return stat.S_IFDIR | 0o755
    if filemode == GIT_FILEMODE_LINK:
        return stat.S_IFLNK | 0o777
    if filemode & 0o111:
        return stat.S_IFREG | 0o755
    return stat.S_IFREG | 0o644


def _peel(repo: Repo, obj):
    """Follow annotated tags until a non-tag object is reached."""
    for _ in range(50):  # safety limit
        if not isinstance(obj, Tag):
            return obj
        obj = repo[obj.object[1]]
    raise ValueError("Tag chain too deep")


def resolve_commit(repo: Repo, ref: str) -> Commit:
    """Resolve *ref* to a commit.

    Tries, in order: a full ref name (``HEAD``, ``refs/heads/main``), a
    branch, a tag, then a 40-char commit hex.

    Raises:
        ValueError: If *ref* names nothing, or names a non-commit object.
    """
    raw = ref.encode()
    refs = repo.refs
    for candidate in (raw, b"refs/heads/" + raw, b"refs/tags/" + raw):
        try:
            sha = refs[candidate]
        except KeyError:
            continue
        return _as_commit(repo, repo[sha], ref)
    if len(raw) == 40 and set(raw) <= _HEX:
        try:
            obj = repo[raw]
        except KeyError:
            raise ValueError(f"Unknown ref: {ref}")
        return _as_commit(repo, obj, ref)
    raise ValueError(f"Unknown ref: {ref}")


def _as_commit(repo: Repo, obj, ref: str) -> Commit:
    obj = _peel(repo, obj)
    if not isinstance(obj, Commit):
        raise ValueError(f"Ref {ref!r} does not point to a commit")
    return obj


def _segments(path: str) -> list[str]:
    return [seg for seg in path.split("/") if seg]


def entry_at_path(repo: Repo, tree_sha: bytes, path: str) -> TreeEntry | None:
    """Return the :class:`TreeEntry` at normalized *path*, or None if missing.

    A path running through a file, or naming a submodule, counts as missing.
    """
    segments = _segments(path)
    if not segments:
        return None
    tree = repo[tree_sha]
    for i, seg in enumerate(segments):
        if not isinstance(tree, Tree):
            return None
        try:
            mode, sha = tree[seg.encode()]
        except KeyError:
            return None
        if mode == GIT_FILEMODE_COMMIT:
            return None
        if i < len(segments) - 1:
            if mode != GIT_FILEMODE_TREE:
                return None
            tree = repo[sha]
        else:
            return TreeEntry(seg, mode, sha)
    return None


def list_entries(repo: Repo, tree_sha: bytes) -> list[TreeEntry]:
    """List the entries of the tree *tree_sha*, skipping submodules."""
    tree = repo[tree_sha]
    return [
        TreeEntry(item.path.decode(), item.mode, item.sha)
        for item in tree.iteritems()
        if item.mode != GIT_FILEMODE_COMMIT
    ]


def blob_data(repo: Repo, sha: bytes) -> bytes:
    obj = repo[sha]
    if not isinstance(obj, Blob):
        raise IsADirectoryError(sha.decode())
    return obj.data


def blob_size(repo: Repo, sha: bytes) -> int:
    return repo[sha].raw_length()
