"""The sync command."""

from __future__ import annotations

import click

from ._helpers import (
    main,
    _is_remote_arg,
    _library_errors,
    _parse_tree_arg,
    _status,
    _store_options,
)


@main.command()
@_store_options
@click.argument("src")
@click.argument("dst")
@click.option("--delete", is_flag=True, default=False,
              help="Remove destination entries missing from SRC.")
@click.option("--dry-run", "-n", "dry_run", is_flag=True, default=False,
              help="Show what would change without changing anything.")
@click.option("--ignore-errors", is_flag=True, default=False,
              help="Skip entries that fail and report them at the end.")
@click.option("--no-overwrite", "no_overwrite", is_flag=True, default=False,
              help="Never replace entries that already exist at DST.")
@click.pass_context
def sync(ctx, src, dst, delete, dry_run, ignore_errors, no_overwrite):
    """Make DST mirror SRC.

    Either side may be an s3:// URI or a local path.  Files are copied when
    missing at DST or when the SRC copy is newer.

    \b
    Examples:
        objtree sync ./site/ s3://bucket/site/ --delete
        objtree sync s3://bucket/data/ ./data/
        objtree sync s3://bucket/a/ s3://other/a/ --dry-run
    """
    from ..copy import sync as sync_trees

    if not (_is_remote_arg(src) or _is_remote_arg(dst)):
        raise click.ClickException("At least one of SRC and DST must be an s3:// URI")
    source = _parse_tree_arg(ctx, src)
    destination = _parse_tree_arg(ctx, dst)

    with _library_errors():
        report = sync_trees(
            source, destination,
            delete=delete, overwrite=not no_overwrite,
            dry_run=dry_run, ignore_errors=ignore_errors,
        )

    if dry_run:
        for action in report.actions():
            prefix = {"add": "+", "update": "~", "delete": "-"}[action.action.value]
            click.echo(f"{prefix} {action.path}")
    else:
        _status(ctx, f"Synced {src} -> {dst}: {report.summary()}")

    for w in report.warnings:
        click.echo(f"WARNING: {w.path}: {w.error}", err=True)
    if report.errors:
        for e in report.errors:
            click.echo(f"ERROR: {e.path}: {e.error}", err=True)
        raise SystemExit(1)
