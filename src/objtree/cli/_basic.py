"""Basic commands: ls, cat, put, rm, mkdir, stat, walk."""

from __future__ import annotations

import os
import sys

import click

from .. import fs
from ..walk import walk as walk_tree
from ._helpers import (
    main,
    _library_errors,
    _parse_remote,
    _status,
    _store_options,
)


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("path")
@click.option("-R", "--recursive", is_flag=True, help="List everything below PATH, one relative path per line.")
@click.pass_context
def ls(ctx, path, recursive):
    """List the children of a directory.

    Subdirectories are shown with a trailing '/'.

    \b
    Examples:
        objtree ls s3://bucket/
        objtree ls -R s3://bucket/docs/
    """
    directory = _parse_remote(ctx, path)
    with _library_errors():
        if recursive:
            root = directory if directory.is_directory else directory.as_directory()
            for node in walk_tree(directory):
                click.echo(node.key[len(root.key):])
        else:
            if not directory.is_directory:
                directory = directory.as_directory()
            for name in fs.list_children(directory):
                click.echo(name)


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("paths", nargs=-1, required=True)
@click.option("--range", "byte_range", nargs=2, type=int, default=None,
              help="Inclusive START END byte range.")
@click.pass_context
def cat(ctx, paths, byte_range):
    """Concatenate object contents to stdout.

    A version can be selected with ?version=ID.
    """
    for raw in paths:
        path = _parse_remote(ctx, raw)
        with _library_errors():
            data = fs.read(path, byte_range=tuple(byte_range) if byte_range else None)
        sys.stdout.buffer.write(data)


# ---------------------------------------------------------------------------
# put
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("source", type=click.File("rb"))
@click.argument("dest")
@click.option("--content-type", default=None, help="MIME type (guessed from the key by default).")
@click.option("--multipart", is_flag=True, default=False, help="Use a multipart upload for large payloads.")
@click.option("--part-size", type=int, default=fs.DEFAULT_PART_SIZE, show_default=True,
              help="Part size in bytes for --multipart.")
@click.pass_context
def put(ctx, source, dest, content_type, multipart, part_size):
    """Upload SOURCE (a local file, or '-' for stdin) to DEST.

    A DEST ending in '/' receives the file under its own name.
    """
    path = _parse_remote(ctx, dest)
    if path.is_directory:
        name = os.path.basename(getattr(source, "name", "") or "")
        if not name or name == "-" or name.startswith("<"):
            raise click.ClickException("DEST must name a file when reading stdin")
        path = path / name
    data = source.read()
    with _library_errors():
        fs.write(path, data, multipart=multipart, part_size=part_size, content_type=content_type)
    _status(ctx, f"Wrote {path} ({len(data)} bytes)")


# ---------------------------------------------------------------------------
# rm
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("paths", nargs=-1, required=True)
@click.option("-r", "-R", "--recursive", is_flag=True, default=False,
              help="Remove directories and their contents.")
@click.option("-f", "--force", is_flag=True, default=False,
              help="Ignore paths that do not exist.")
@click.pass_context
def rm(ctx, paths, recursive, force):
    """Remove files or directories."""
    for raw in paths:
        path = _parse_remote(ctx, raw)
        with _library_errors():
            fs.remove(path, recursive=recursive, missing_ok=force)
        _status(ctx, f"Removed {path}")


# ---------------------------------------------------------------------------
# mkdir
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("path")
@click.option("-p", "--parents", is_flag=True, default=False,
              help="Create missing parents; no error if the directory exists.")
@click.pass_context
def mkdir(ctx, path, parents):
    """Create a directory (an empty marker object)."""
    directory = _parse_remote(ctx, path)
    if not directory.is_directory:
        directory = directory.as_directory()
    with _library_errors():
        fs.make_directory(directory, recursive=parents, exist_ok=parents)
    _status(ctx, f"Created {directory}")


# ---------------------------------------------------------------------------
# stat
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("path")
@click.pass_context
def stat(ctx, path):
    """Show size, modification time, etag and version of PATH."""
    target = _parse_remote(ctx, path)
    with _library_errors():
        result = fs.stat(target)
    modified = result.last_modified.isoformat() if result.last_modified else "-"
    click.echo(f"path:     {result.path}")
    click.echo(f"type:     {'directory' if result.is_dir else 'file'}")
    click.echo(f"size:     {result.size}")
    click.echo(f"modified: {modified}")
    if result.etag:
        click.echo(f"etag:     {result.etag}")
    if result.version:
        click.echo(f"version:  {result.version}")


# ---------------------------------------------------------------------------
# walk
# ---------------------------------------------------------------------------

@main.command()
@_store_options
@click.argument("path")
@click.option("--bottom-up", "bottom_up", is_flag=True, default=False,
              help="Show directory contents before the directory itself.")
@click.pass_context
def walk(ctx, path, bottom_up):
    """Print every path below PATH as a full s3:// URI."""
    root = _parse_remote(ctx, path)
    with _library_errors():
        for node in walk_tree(root, topdown=not bottom_up):
            click.echo(str(node))
