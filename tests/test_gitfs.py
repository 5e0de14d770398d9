"""Tests for GitTreeFs, alone and as a copy-on-write base."""

import errno
import os
import stat

import pytest

from cowfs import (
    CopyOnWriteFs,
    FileType,
    GitTreeFs,
    MemFs,
    OsFs,
    ReadOnlyFsError,
    read_dir,
    read_file,
    write_file,
)
from conftest import COMMIT_TIME, make_git_repo, perm_of


@pytest.fixture
def gfs(git_base):
    fs = GitTreeFs.from_repo(git_base)
    yield fs
    fs.close()


# ── from_repo ─────────────────────────────────────────────────────────

class TestFromRepo:
    def test_pins_head(self, gfs):
        assert gfs.ref_name == "HEAD"
        assert len(gfs.commit_hash) == 40
        assert len(gfs.tree_hash) == 40
        assert gfs.name == "GitTreeFs"
        assert gfs.commit_hash[:7] in repr(gfs)

    def test_pins_branch(self, git_base):
        fs = GitTreeFs.from_repo(git_base, "main")
        try:
            assert read_file(fs, "/README.md") == b"# project\n"
        finally:
            fs.close()

    def test_pins_commit_sha(self, tmp_path):
        path = tmp_path / "r.git"
        make_git_repo(path, {"v.txt": b"one"})
        fs = GitTreeFs.from_repo(path)
        try:
            first = fs.commit_hash
            by_sha = GitTreeFs.from_repo(path, first)
            try:
                assert by_sha.commit_hash == first
                assert read_file(by_sha, "/v.txt") == b"one"
            finally:
                by_sha.close()
        finally:
            fs.close()

    def test_missing_repo(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GitTreeFs.from_repo(tmp_path / "nope.git")

    def test_bad_ref(self, git_base):
        with pytest.raises(ValueError):
            GitTreeFs.from_repo(git_base, "no-such-branch")


# ── reads ─────────────────────────────────────────────────────────────

class TestReads:
    def test_root(self, gfs):
        st = gfs.stat("/")
        assert st.is_dir
        assert st.mtime == COMMIT_TIME

    def test_file_stat(self, gfs):
        st = gfs.stat("/src/main.py")
        assert st.name == "main.py"
        assert st.size == len(b"print('hi')\n")
        assert st.perm == 0o644
        assert st.file_type == FileType.FILE
        assert st.mtime == COMMIT_TIME

    def test_executable(self, gfs):
        assert gfs.stat("/run.sh").perm == 0o755

    def test_directory_stat(self, gfs):
        st = gfs.stat("/src/lib")
        assert st.is_dir
        assert st.size == 0

    def test_missing(self, gfs):
        with pytest.raises(FileNotFoundError):
            gfs.stat("/nope")
        with pytest.raises(FileNotFoundError):
            gfs.open("/README.md/inner")

    def test_read(self, gfs):
        with gfs.open("/src/lib/util.py") as f:
            assert f.read(2) == b"# "
            assert f.read() == b"util\n"

    def test_listing(self, gfs):
        assert [fi.name for fi in read_dir(gfs, "/")] == ["README.md", "run.sh", "src"]
        assert [fi.name for fi in read_dir(gfs, "/src")] == ["lib", "main.py"]

    def test_read_only_open_file(self, gfs):
        with gfs.open_file("/README.md", os.O_RDONLY) as f:
            assert f.read() == b"# project\n"

    def test_directory_read(self, gfs):
        with gfs.open("/src") as f:
            with pytest.raises(IsADirectoryError):
                f.read()


class TestRefusals:
    @pytest.mark.parametrize("call", [
        lambda fs: fs.create("/x"),
        lambda fs: fs.remove("/README.md"),
        lambda fs: fs.remove_all("/src"),
        lambda fs: fs.rename("/README.md", "/x"),
        lambda fs: fs.chtimes("/README.md", 0, 0),
        lambda fs: fs.chmod("/README.md", 0o600),
        lambda fs: fs.mkdir("/x"),
        lambda fs: fs.makedirs("/x/y"),
        lambda fs: fs.open_file("/README.md", os.O_RDWR),
    ])
    def test_mutators_refused(self, gfs, call):
        with pytest.raises(ReadOnlyFsError):
            call(gfs)


# ── as a copy-on-write base ───────────────────────────────────────────

class TestAsBase:
    def test_write_materializes_into_memory_overlay(self, gfs):
        layer = MemFs()
        cow = CopyOnWriteFs(gfs, layer)
        with cow.open_file("/src/main.py", os.O_WRONLY | os.O_APPEND) as f:
            f.write(b"print('bye')\n")
        assert read_file(cow, "/src/main.py") == b"print('hi')\nprint('bye')\n"
        assert read_file(gfs, "/src/main.py") == b"print('hi')\n"
        assert layer.stat("/src").is_dir

    def test_chmod_on_host_overlay(self, gfs, tmp_path):
        layer = OsFs(tmp_path / "overlay")
        cow = CopyOnWriteFs(gfs, layer)
        cow.chmod("/run.sh", 0o700)
        assert perm_of(layer.real_path("/run.sh")) == 0o700
        assert (tmp_path / "overlay" / "run.sh").read_bytes() == b"#!/bin/sh\n"
        assert gfs.stat("/run.sh").perm == 0o755

    def test_materialized_copy_keeps_commit_time(self, gfs):
        layer = MemFs()
        cow = CopyOnWriteFs(gfs, layer)
        cow.chmod("/src/lib/util.py", 0o600)
        st = layer.stat("/src/lib/util.py")
        assert st.mtime == COMMIT_TIME
        assert st.perm == 0o600

    def test_create_truncates_overlay_only(self, gfs):
        layer = MemFs()
        cow = CopyOnWriteFs(gfs, layer)
        cow.create("/README.md").close()
        assert read_file(cow, "/README.md") == b""
        assert read_file(gfs, "/README.md") == b"# project\n"

    def test_merged_listing(self, gfs):
        layer = MemFs()
        write_file(layer, "/src/extra.py", b"")
        cow = CopyOnWriteFs(gfs, layer)
        with cow.open("/src") as f:
            assert f.readdirnames() == ["extra.py", "lib", "main.py"]

    def test_symlink_copy_refused(self, tmp_path):
        path = tmp_path / "links.git"
        make_git_repo(path, {
            "t.txt": b"target",
            "link": (b"t.txt", 0o120000),
        })
        gfs = GitTreeFs.from_repo(path)
        try:
            assert gfs.stat("/link").file_type == FileType.LINK
            layer = MemFs()
            cow = CopyOnWriteFs(gfs, layer)
            with pytest.raises(OSError) as exc_info:
                cow.chtimes("/link", 1.0, 1.0)
            assert exc_info.value.errno == errno.EOPNOTSUPP
            with pytest.raises(OSError):
                cow.open_file("/link", os.O_WRONLY)
            with pytest.raises(FileNotFoundError):
                layer.stat("/link")
            cow.chmod("/t.txt", 0o600)
            assert read_file(layer, "/t.txt") == b"target"
        finally:
            gfs.close()

    def test_base_only_remove_refused(self, gfs):
        cow = CopyOnWriteFs(gfs, MemFs())
        with pytest.raises(PermissionError) as exc_info:
            cow.remove("/README.md")
        assert not isinstance(exc_info.value, ReadOnlyFsError)
        assert stat.S_ISREG(gfs.stat("/README.md").mode)
