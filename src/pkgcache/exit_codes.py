"""Numeric process exit codes used by the ``pkgcache`` command line.

Each constant maps to an error category and is referenced by the matching
:class:`~pkgcache.exceptions.PkgcacheError` subclass, so shell scripts can
tell a corrupted namespace from a typo without parsing stderr.

Example::

    $ pkgcache list "not a name"
    $ echo $?
    2   # EXIT_INVALID_USAGE -- the client identifier was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""An argument was malformed (identifier, key, duration, stack depth)."""

EXIT_CORRUPTION = 8
"""A cache entry is missing its creation timestamp."""

EXIT_INVARIANT_VIOLATION = 9
"""More than one entry was found for a key that must be unique."""
