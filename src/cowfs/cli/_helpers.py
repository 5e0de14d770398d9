"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path

import click

from .._lock import overlay_lock
from ..cow import CopyOnWriteFs
from ..fs import Fs, _parent, exists, normalize_path
from ..gitfs import GitTreeFs
from ..osfs import OsFs
from ..readonly import ReadOnlyFs


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _layer_path(raw: str) -> str:
    """Normalize and validate a path inside the merged view."""
    try:
        return normalize_path(raw)
    except ValueError as exc:
        raise click.ClickException(f"Invalid path: {exc}")


def _is_git_repo(path: Path) -> bool:
    """True for a bare repository or a work tree with a .git directory."""
    if (path / ".git").is_dir():
        return True
    return (path / "HEAD").is_file() and (path / "objects").is_dir()


def _open_base(base: str, ref: str) -> Fs:
    """Open --base as a pinned git tree, or as a read-only host directory."""
    path = Path(base)
    if not path.is_dir():
        raise click.ClickException(f"Base not found: {base}")
    if _is_git_repo(path):
        try:
            return GitTreeFs.from_repo(path, ref)
        except ValueError as exc:
            raise click.ClickException(str(exc))
    return ReadOnlyFs(OsFs(path, create=False))


def _require(ctx, key: str, option: str, envvar: str) -> str:
    value = ctx.obj.get(key)
    if not value:
        raise click.ClickException(
            f"No {key} specified. Use {option} or set {envvar}."
        )
    return value


def _open_fs(ctx) -> CopyOnWriteFs:
    """Build the merged view from the group options."""
    base = _require(ctx, "base", "--base", "COWFS_BASE")
    overlay = _require(ctx, "overlay", "--overlay", "COWFS_OVERLAY")
    fs = CopyOnWriteFs(_open_base(base, ctx.obj["ref"]), OsFs(overlay))
    _status(ctx, f"Opened {fs!r}")
    return fs


@contextmanager
def _locked(ctx):
    """Hold the overlay lock across a mutating command."""
    with overlay_lock(_require(ctx, "overlay", "--overlay", "COWFS_OVERLAY")):
        yield


def _ensure_overlay_parent(fs: CopyOnWriteFs, path: str) -> None:
    """Create *path*'s parent in the overlay when it is only visible in the base.

    The merged view does not create ancestors on its own.
    """
    parent = _parent(path)
    if parent == "/" or exists(fs.layer, parent):
        return
    info = fs.stat(parent)
    if not info.is_dir:
        raise NotADirectoryError(parent)
    fs.layer.makedirs(parent, info.perm)


@contextmanager
def _fs_errors(path: str):
    """Translate filesystem errors into click errors naming *path*."""
    try:
        yield
    except FileNotFoundError:
        raise click.ClickException(f"No such file or directory: {path}")
    except IsADirectoryError:
        raise click.ClickException(f"{path} is a directory, not a file")
    except NotADirectoryError:
        raise click.ClickException(f"Not a directory: {path}")
    except FileExistsError:
        raise click.ClickException(f"Already exists: {path}")
    except PermissionError as exc:
        raise click.ClickException(f"Permission denied: {path}: {exc.strerror or exc}")
    except OSError as exc:
        raise click.ClickException(f"{path}: {exc.strerror or exc}")


def _format_option(f):
    """Shared --format option for commands with structured output."""
    return click.option(
        "--format", "fmt", type=click.Choice(["text", "json"]), default="text",
        show_default=True, help="Output format.",
    )(f)


def _store_obj(ctx, param, value):
    """Click callback: store an eager group option in the context."""
    ctx.ensure_object(dict)
    ctx.obj[param.name] = value
    return value


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--base", "-b", type=click.Path(), envvar="COWFS_BASE",
              help="Base layer: a directory or a git repository (or set COWFS_BASE).",
              expose_value=False, callback=_store_obj, is_eager=True)
@click.option("--ref", default="HEAD", envvar="COWFS_REF", show_default=True,
              help="Ref to pin when the base is a git repository (or set COWFS_REF).",
              expose_value=False, callback=_store_obj, is_eager=True)
@click.option("--overlay", "-o", type=click.Path(), envvar="COWFS_OVERLAY",
              help="Writable overlay directory (or set COWFS_OVERLAY).",
              expose_value=False, callback=_store_obj, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """cowfs: a copy-on-write view over a read-only base.

    Reads see the base with the overlay on top; every change lands in the
    overlay.  Changing a file that exists only in the base copies it into
    the overlay first.  The base is never modified.

    \b
    Quick start:
      cowfs -b project.git -o scratch ls
      cowfs -b project.git -o scratch cat /README.md
      echo hi | cowfs -b project.git -o scratch write /notes.txt
      cowfs -b project.git -o scratch stat /notes.txt

    \b
    Files that exist only in the base cannot be removed or renamed.
    Set COWFS_BASE / COWFS_OVERLAY to avoid passing them on every call.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
