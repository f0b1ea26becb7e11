"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path

import click

from ..exceptions import InvalidPathError, StoreError, TypeMismatchError
from ..path import SCHEME, ObjectPath, parse_path
from ..s3 import ENV_ENDPOINT_URL, ENV_PROFILE, ENV_REGION, S3Store


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_setting(ctx, param, value):
    """Click callback: store a connection option in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj[param.name] = value
    return value


def _store_options(f):
    """Shared --endpoint-url / --profile / --region options."""
    f = click.option(
        "--region", envvar=ENV_REGION, default=None,
        help=f"Region for the S3 client (or set {ENV_REGION}).",
        expose_value=False, callback=_store_setting, is_eager=True,
    )(f)
    f = click.option(
        "--profile", envvar=ENV_PROFILE, default=None,
        help=f"AWS profile name (or set {ENV_PROFILE}).",
        expose_value=False, callback=_store_setting, is_eager=True,
    )(f)
    f = click.option(
        "--endpoint-url", "endpoint_url", envvar=ENV_ENDPOINT_URL, default=None,
        help=f"S3-compatible endpoint URL (or set {ENV_ENDPOINT_URL}).",
        expose_value=False, callback=_store_setting, is_eager=True,
    )(f)
    return f


def _get_store(ctx):
    """Return the store for this invocation, building the S3 client once.

    A store placed in ``ctx.obj["store"]`` by the caller is used as is.
    """
    store = ctx.obj.get("store")
    if store is None:
        store = S3Store.from_env(
            endpoint_url=ctx.obj.get("endpoint_url"),
            profile=ctx.obj.get("profile"),
            region=ctx.obj.get("region"),
        )
        ctx.obj["store"] = store
    return store


def _parse_remote(ctx, raw: str) -> ObjectPath:
    """Parse an ``s3://`` argument bound to the invocation's store."""
    try:
        return parse_path(raw, store=_get_store(ctx))
    except InvalidPathError as exc:
        raise click.ClickException(f"Invalid path: {exc}")


def _is_remote_arg(raw: str) -> bool:
    return raw.startswith(f"{SCHEME}://")


def _parse_tree_arg(ctx, raw: str) -> ObjectPath | Path:
    """Parse a sync/copy argument: an ``s3://`` URI or a local path."""
    if _is_remote_arg(raw):
        return _parse_remote(ctx, raw)
    return Path(raw)


@contextmanager
def _library_errors():
    """Turn library errors into :class:`click.ClickException`."""
    try:
        yield
    except IsADirectoryError as exc:
        raise click.ClickException(f"Is a directory: {exc}")
    except FileNotFoundError as exc:
        raise click.ClickException(f"Not found: {exc}")
    except FileExistsError as exc:
        raise click.ClickException(f"Already exists: {exc}")
    except PermissionError as exc:
        raise click.ClickException(f"Permission denied: {exc}")
    except (StoreError, TypeMismatchError, InvalidPathError, OSError) as exc:
        raise click.ClickException(str(exc))


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@_store_options
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """objtree: an S3 bucket as a directory tree.

    Paths are s3:// URIs; a trailing '/' names a directory.

    \b
    Quick start:
      objtree put notes.txt s3://bucket/docs/notes.txt
      objtree ls s3://bucket/docs/
      objtree cat s3://bucket/docs/notes.txt
      objtree sync ./site/ s3://bucket/site/ --delete

    Set OBJTREE_ENDPOINT_URL to talk to an S3-compatible service.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
