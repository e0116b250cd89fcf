"""Built-in command groups of the ``pkgcache`` command line.

Each sub-module exposes Typer commands or a ``typer.Typer`` group that
:func:`pkgcache.app.main` attaches to the root application.
"""
