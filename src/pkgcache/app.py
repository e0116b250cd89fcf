"""Typer application and CLI entry point for pkgcache.

This module wires the root Typer application, registers the maintenance
commands (``list``, ``path``, ``remove``, ``clear``) and the ``config``
group, and maps :class:`~pkgcache.exceptions.PkgcacheError` to process exit
codes.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unexpected exceptions are written to a crash log under
the cache directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from pkgcache import __version__
from pkgcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="pkgcache",
    help="Inspect and clean per-package result caches.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pkgcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache root directory (overrides config and PKGCACHE_DIR)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~pkgcache.output.OutputManager`, turns on
    debug logging for ``--verbose`` and stores shared options in
    ``ctx.obj``.
    """
    from pkgcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    ctx.ensure_object(dict)
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to ``<cache_dir>/logs`` and return the file path."""
    from pkgcache.config import get_cache_dir

    logs_dir = get_cache_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    """Attach the built-in commands to :data:`app` (idempotent)."""
    if getattr(app, "_pkgcache_registered", False):
        return
    from pkgcache.commands.cache import clear_command, list_command, path_command, remove_command
    from pkgcache.commands.config import config_app

    app.command("list")(list_command)
    app.command("path")(path_command)
    app.command("remove")(remove_command)
    app.command("clear")(clear_command)
    app.add_typer(config_app, name="config", help="Configuration management.")
    app._pkgcache_registered = True  # type: ignore[attr-defined]


def main() -> None:
    """CLI entry point invoked by the ``pkgcache`` console script.

    :class:`~pkgcache.exceptions.PkgcacheError` instances end the process
    with the error's ``exit_code``; a :class:`~pkgcache.exceptions.CorruptionError`
    additionally suggests the directory to delete. Any other exception
    produces a crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        handle_exception(exc)


def handle_exception(exc: Exception) -> None:
    """Report *exc* on stderr and exit with the matching code."""
    from pkgcache.exceptions import CorruptionError, PkgcacheError
    from pkgcache.output import error, suggest

    if isinstance(exc, PkgcacheError):
        error(str(exc))
        if isinstance(exc, CorruptionError) and exc.path is not None:
            suggest(f"rm -rf {exc.path}")
        sys.exit(exc.exit_code)

    log_path = _write_crash_log(exc)
    error(f"Unexpected error. Debug log: {log_path}")
    sys.exit(EXIT_GENERIC_FAILURE)
