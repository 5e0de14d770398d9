"""Basic commands: ls, cat, stat, write, rm, mv, mkdir, chmod, touch."""

from __future__ import annotations

import json
import os
import stat as _stat
import time
from datetime import datetime, timezone

import click

from ..fs import FileInfo, exists, read_file
from ._helpers import (
    main,
    _ensure_overlay_parent,
    _format_option,
    _fs_errors,
    _layer_path,
    _locked,
    _open_fs,
    _status,
)


def _info_dict(path: str, info: FileInfo, layer: str | None = None) -> dict:
    d = {
        "name": info.name,
        "path": path,
        "type": str(info.file_type),
        "size": info.size,
        "mode": f"{info.perm:04o}",
        "mtime": datetime.fromtimestamp(info.mtime, tz=timezone.utc).isoformat(),
    }
    if layer is not None:
        d["layer"] = layer
    return d


def _long_line(info: FileInfo, width: int) -> str:
    mtime = datetime.fromtimestamp(info.mtime, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    name = info.name + "/" if info.is_dir else info.name
    return f"{_stat.filemode(info.mode)}  {info.size:>{width}}  {mtime}  {name}"


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path", default="/")
@click.option("-l", "--long", "long_", is_flag=True, help="Show mode, size and mtime.")
@_format_option
@click.pass_context
def ls(ctx, path, long_, fmt):
    """List the directory at PATH (default: root) in the merged view.

    Directories present in both layers list the union of their entries.
    """
    fs = _open_fs(ctx)
    path = _layer_path(path)
    with _fs_errors(path):
        info = fs.stat(path)
        if info.is_dir:
            with fs.open(path) as f:
                entries = sorted(f.readdir(), key=lambda fi: fi.name)
        else:
            entries = [info]

    if fmt == "json":
        base = path.rstrip("/")
        click.echo(json.dumps([
            _info_dict(f"{base}/{fi.name}" if info.is_dir else path, fi)
            for fi in entries
        ]))
    elif long_:
        width = max((len(str(fi.size)) for fi in entries), default=0)
        for fi in entries:
            click.echo(_long_line(fi, width))
    else:
        for fi in entries:
            click.echo(fi.name + "/" if fi.is_dir else fi.name)


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def cat(ctx, paths):
    """Concatenate file contents to stdout."""
    fs = _open_fs(ctx)
    out = click.get_binary_stream("stdout")
    for raw in paths:
        path = _layer_path(raw)
        with _fs_errors(path):
            data = read_file(fs, path)
        out.write(data)
    out.flush()


# ---------------------------------------------------------------------------
# stat
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@_format_option
@click.pass_context
def stat(ctx, path, fmt):
    """Show metadata for PATH and which layer provides it."""
    fs = _open_fs(ctx)
    path = _layer_path(path)
    with _fs_errors(path):
        info = fs.stat(path)
    layer = "overlay" if exists(fs.layer, path) else "base"
    d = _info_dict(path, info, layer)
    if fmt == "json":
        click.echo(json.dumps(d))
        return
    for key in ("path", "type", "size", "mode", "mtime", "layer"):
        click.echo(f"{key}: {d[key]}")


# ---------------------------------------------------------------------------
# write
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.option("-a", "--append", is_flag=True, help="Append instead of truncating.")
@click.pass_context
def write(ctx, path, append):
    """Write stdin to PATH.

    A file that exists only in the base is copied into the overlay first,
    so --append extends the base content.

    \b
    Examples:
        echo hello | cowfs write /greeting.txt
        cowfs write --append /log.txt < more.txt
    """
    fs = _open_fs(ctx)
    path = _layer_path(path)
    data = click.get_binary_stream("stdin").read()
    flags = os.O_WRONLY | os.O_CREAT | (os.O_APPEND if append else os.O_TRUNC)
    with _locked(ctx), _fs_errors(path):
        _ensure_overlay_parent(fs, path)
        with fs.open_file(path, flags, 0o666) as f:
            f.write(data)
    _status(ctx, f"Wrote {len(data)} bytes to {path}")


# ---------------------------------------------------------------------------
# rm
# ---------------------------------------------------------------------------

@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("-R", "--recursive", is_flag=True, default=False,
              help="Remove directories recursively.")
@click.pass_context
def rm(ctx, paths, recursive):
    """Remove files from the overlay.

    Paths that exist only in the base cannot be removed.  A path present
    in both layers loses its overlay copy and the base version shows
    through again.
    """
    fs = _open_fs(ctx)
    with _locked(ctx):
        for raw in paths:
            path = _layer_path(raw)
            with _fs_errors(path):
                if recursive:
                    fs.remove_all(path)
                else:
                    fs.remove(path)
            _status(ctx, f"Removed {path}")


# ---------------------------------------------------------------------------
# mv
# ---------------------------------------------------------------------------

@main.command()
@click.argument("src")
@click.argument("dest")
@click.pass_context
def mv(ctx, src, dest):
    """Rename SRC to DEST within the overlay."""
    fs = _open_fs(ctx)
    src = _layer_path(src)
    dest = _layer_path(dest)
    with _locked(ctx):
        # Only an overlay source can move; anything else is refused with
        # the overlay untouched.
        if exists(fs.layer, src):
            with _fs_errors(dest):
                _ensure_overlay_parent(fs, dest)
        with _fs_errors(src):
            fs.rename(src, dest)
    _status(ctx, f"Renamed {src} -> {dest}")


# ---------------------------------------------------------------------------
# mkdir
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.option("-p", "--parents", is_flag=True, help="No error if PATH is already an overlay directory.")
@click.option("-m", "--mode", "mode", default="755", show_default=True,
              help="Permission bits (octal).")
@click.pass_context
def mkdir(ctx, path, parents, mode):
    """Create directory PATH in the overlay.

    Missing ancestors are always created.  PATH may not name a directory
    that already exists in the base.
    """
    fs = _open_fs(ctx)
    path = _layer_path(path)
    perm = _parse_mode(mode)
    with _locked(ctx), _fs_errors(path):
        if parents:
            fs.makedirs(path, perm)
        else:
            if exists(fs.layer, path):
                raise FileExistsError(path)
            fs.mkdir(path, perm)
    _status(ctx, f"Created {path}")


# ---------------------------------------------------------------------------
# chmod / touch
# ---------------------------------------------------------------------------

def _parse_mode(value: str) -> int:
    try:
        mode = int(value, 8)
    except ValueError:
        raise click.ClickException(f"Invalid mode: {value} (use octal, e.g. 644)")
    if not 0 <= mode <= 0o7777:
        raise click.ClickException(f"Invalid mode: {value}")
    return mode


@main.command()
@click.argument("mode")
@click.argument("path")
@click.pass_context
def chmod(ctx, mode, path):
    """Change PATH's permission bits to octal MODE."""
    fs = _open_fs(ctx)
    path = _layer_path(path)
    perm = _parse_mode(mode)
    with _locked(ctx), _fs_errors(path):
        fs.chmod(path, perm)
    _status(ctx, f"Mode of {path} set to {perm:04o}")


@main.command()
@click.argument("path")
@click.pass_context
def touch(ctx, path):
    """Update PATH's timestamps, creating an empty file if it is missing."""
    fs = _open_fs(ctx)
    path = _layer_path(path)
    now = time.time()
    with _locked(ctx), _fs_errors(path):
        if exists(fs, path):
            fs.chtimes(path, now, now)
        else:
            _ensure_overlay_parent(fs, path)
            fs.create(path).close()
    _status(ctx, f"Touched {path}")
