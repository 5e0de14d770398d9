"""Shared fixtures for cowfs tests."""

import os
import stat

import pytest
from click.testing import CliRunner
from dulwich.index import commit_tree
from dulwich.objects import Blob, Commit
from dulwich.repo import Repo

from cowfs import CopyOnWriteFs, Fs, MemFs, write_file

COMMIT_TIME = 1_700_000_000
BASE_MTIME = 1_600_000_000.0


def make_git_repo(path, files, *, branch="main", commit_time=COMMIT_TIME):
    """Create a bare repo at *path* with one commit holding *files*.

    *files* maps repo paths to bytes or ``(bytes, filemode)``.
    Returns the commit SHA (hex bytes).
    """
    repo = Repo.init_bare(str(path), mkdir=True)
    try:
        entries = []
        for name, value in files.items():
            data, mode = value if isinstance(value, tuple) else (value, 0o100644)
            blob = Blob.from_string(data)
            repo.object_store.add_object(blob)
            entries.append((name.encode(), blob.id, mode))
        tree_id = commit_tree(repo.object_store, entries)

        commit = Commit()
        commit.tree = tree_id
        commit.author = commit.committer = b"cowfs <cowfs@localhost>"
        commit.author_time = commit.commit_time = commit_time
        commit.author_timezone = commit.commit_timezone = 0
        commit.message = b"fixture\n"
        repo.object_store.add_object(commit)

        repo.refs[f"refs/heads/{branch}".encode()] = commit.id
        repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())
        return commit.id
    finally:
        repo.close()


class SpyFs(Fs):
    """Delegating layer that records every call and can inject failures.

    ``fail[op] = exc`` makes the next and all later *op* calls raise *exc*.
    """

    MUTATORS = {"create", "remove", "remove_all", "rename", "chtimes", "chmod", "mkdir", "makedirs"}

    def __init__(self, inner: Fs):
        self.inner = inner
        self.calls: list[tuple[str, tuple]] = []
        self.fail: dict[str, BaseException] = {}

    @property
    def name(self) -> str:
        return f"Spy({self.inner.name})"

    def _call(self, op, *args):
        self.calls.append((op, args))
        if op in self.fail:
            raise self.fail[op]
        return getattr(self.inner, op)(*args)

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    def mutations(self) -> list[tuple[str, tuple]]:
        out = [(op, args) for op, args in self.calls if op in self.MUTATORS]
        out += [(op, args) for op, args in self.calls
                if op == "open_file" and args[1] & (os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC)]
        return out

    def stat(self, path):
        return self._call("stat", path)

    def open(self, path):
        return self._call("open", path)

    def open_file(self, path, flags, perm=0o666):
        return self._call("open_file", path, flags, perm)

    def create(self, path):
        return self._call("create", path)

    def remove(self, path):
        return self._call("remove", path)

    def remove_all(self, path):
        return self._call("remove_all", path)

    def rename(self, old, new):
        return self._call("rename", old, new)

    def chtimes(self, path, atime, mtime):
        return self._call("chtimes", path, atime, mtime)

    def chmod(self, path, mode):
        return self._call("chmod", path, mode)

    def mkdir(self, path, perm=0o777):
        return self._call("mkdir", path, perm)

    def makedirs(self, path, perm=0o777):
        return self._call("makedirs", path, perm)


def _populate_base(fs: MemFs) -> None:
    """Base tree:

        /a.txt            "hello", 0644
        /only-base.txt    "base only"
        /run.sh           "#!/bin/sh", 0755
        /d/y              "y"
        /both.txt         "base version"
        /shared/keep.txt  "keep"
    """
    write_file(fs, "/a.txt", b"hello", 0o644)
    write_file(fs, "/only-base.txt", b"base only", 0o644)
    write_file(fs, "/run.sh", b"#!/bin/sh", 0o755)
    fs.makedirs("/d", 0o755)
    write_file(fs, "/d/y", b"y", 0o644)
    write_file(fs, "/both.txt", b"base version", 0o644)
    fs.makedirs("/shared", 0o750)
    write_file(fs, "/shared/keep.txt", b"keep", 0o644)
    for path in ("/a.txt", "/only-base.txt", "/run.sh", "/d/y", "/both.txt", "/shared/keep.txt"):
        fs.chtimes(path, BASE_MTIME, BASE_MTIME)
    fs.chtimes("/shared", BASE_MTIME, BASE_MTIME)


@pytest.fixture
def base_fs():
    fs = MemFs()
    _populate_base(fs)
    return fs


@pytest.fixture
def overlay_fs():
    """Overlay with /d/x and its own /both.txt."""
    fs = MemFs()
    fs.makedirs("/d", 0o755)
    write_file(fs, "/d/x", b"x", 0o644)
    write_file(fs, "/both.txt", b"overlay version", 0o600)
    return fs


@pytest.fixture
def spies(base_fs, overlay_fs):
    """(base spy, overlay spy, CopyOnWriteFs over the spies)."""
    base = SpyFs(base_fs)
    layer = SpyFs(overlay_fs)
    return base, layer, CopyOnWriteFs(base, layer)


@pytest.fixture
def cow(spies):
    return spies[2]


# ---------------------------------------------------------------------------
# Host-directory and git fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def base_dir(tmp_path):
    """Host base directory with a.txt (0644), bin/tool (0755) and docs/guide.md."""
    root = tmp_path / "base"
    (root / "bin").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "a.txt").write_bytes(b"hello")
    (root / "bin" / "tool").write_bytes(b"#!/bin/sh\necho tool\n")
    (root / "docs" / "guide.md").write_bytes(b"# guide\n")
    os.chmod(root / "a.txt", 0o644)
    os.chmod(root / "bin" / "tool", 0o755)
    for p in (root / "a.txt", root / "bin" / "tool", root / "docs" / "guide.md"):
        os.utime(p, (BASE_MTIME, BASE_MTIME))
    return root


@pytest.fixture
def git_base(tmp_path):
    """Bare repo with README.md, src/main.py, src/lib/util.py, run.sh (exec)."""
    path = tmp_path / "base.git"
    make_git_repo(path, {
        "README.md": b"# project\n",
        "src/main.py": b"print('hi')\n",
        "src/lib/util.py": b"# util\n",
        "run.sh": (b"#!/bin/sh\n", 0o100755),
    })
    return path


@pytest.fixture
def runner():
    return CliRunner()


def perm_of(path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)
