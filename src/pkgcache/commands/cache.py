"""Cache maintenance commands -- list, locate, remove and expire entries.

These commands operate on one client's namespace at a time and are meant for
diagnostics and manual cleanup; libraries use
:class:`~pkgcache.cache.store.CacheStore` directly.
"""

from __future__ import annotations

from typing import Optional

import typer

from pkgcache.output import info, print_table, print_values, success, warning


def _store(ctx: typer.Context):
    """Build a :class:`~pkgcache.cache.store.CacheStore` honouring ``--cache-dir``."""
    from pkgcache.cache import CacheStore

    cache_dir: Optional[str] = ctx.obj.get("cache_dir") if ctx.obj else None
    return CacheStore.from_config(cli_root=cache_dir)


def list_command(
    ctx: typer.Context,
    client: str = typer.Argument(help="Client (package) identifier."),
) -> None:
    """List the entries of a client's namespace with their age.

    Example::

        pkgcache list mypkg
        pkgcache --json list mypkg
    """
    from pkgcache.durations import format_age

    with _store(ctx) as store:
        now = store.now()
        entries = sorted(store.list(client), key=lambda e: e.created)
        rows = [
            [entry.key, entry.created.isoformat(timespec="seconds"), format_age(entry.age(now))]
            for entry in entries
        ]
        print_table(["key", "created", "age"], rows, title=store.namespace_name(client))
    if not rows:
        info(f"No entries for '{client}'.")


def path_command(
    ctx: typer.Context,
    client: str = typer.Argument(help="Client (package) identifier."),
) -> None:
    """Print the directory holding a client's namespace.

    Example::

        rm -rf "$(pkgcache path mypkg)"
    """
    with _store(ctx) as store:
        print_values([str(store.path(client))])


def remove_command(
    ctx: typer.Context,
    client: str = typer.Argument(help="Client (package) identifier."),
    key: str = typer.Argument(help="Entry key."),
) -> None:
    """Delete one entry from a client's namespace."""
    with _store(ctx) as store:
        removed = store.remove(client, key)
    if removed:
        success(f"Removed '{key}'.")
    else:
        warning(f"No entry '{key}' for '{client}'.")


def clear_command(
    ctx: typer.Context,
    client: str = typer.Argument(help="Client (package) identifier."),
    max_age: str = typer.Option(
        "1 day", "--max-age", "-a", help="Delete entries older than this (e.g. '12 hours')."
    ),
) -> None:
    """Delete every entry older than ``--max-age`` and print the removed keys.

    Example::

        pkgcache clear mypkg --max-age "7 days"
    """
    with _store(ctx) as store:
        removed = sorted(store.clear(client, max_age=max_age))
    print_values(removed)
    success(f"Removed {len(removed)} entr{'y' if len(removed) == 1 else 'ies'}.")
