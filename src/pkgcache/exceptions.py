"""Exception hierarchy for pkgcache.

All exceptions inherit from :class:`PkgcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pkgcache.exit_codes`.
Library callers catch the specific subclasses; the CLI entry point in
:func:`pkgcache.app.main` catches ``PkgcacheError`` and exits with its code.

A missing or stale cache entry is *not* an error: lookups return their
``default`` instead.

Subclass hierarchy::

    PkgcacheError (exit 1)
    +-- InvalidArgumentError     (exit 2)
    +-- CorruptionError          (exit 8)
    +-- InvariantViolationError  (exit 9)
    +-- ConfigError              (exit 1)
"""

from pkgcache.exit_codes import (
    EXIT_CORRUPTION,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_INVARIANT_VIOLATION,
)


class PkgcacheError(Exception):
    """Base exception for all pkgcache errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidArgumentError(PkgcacheError):
    """Raised for a malformed identifier, key, duration or stack depth."""

    exit_code = EXIT_INVALID_USAGE


class CorruptionError(PkgcacheError):
    """Raised when a cache entry has no creation timestamp.

    The whole namespace is considered compromised. The message names the
    directory to delete before retrying; nothing is repaired automatically.

    Args:
        message: Human-readable error description.
        path: Backing storage location of the affected namespace.
    """

    exit_code = EXIT_CORRUPTION

    def __init__(self, message: str, path: object = None):
        super().__init__(message)
        self.path = path


class InvariantViolationError(PkgcacheError):
    """Raised when a key that must be unique resolves to several entries."""

    exit_code = EXIT_INVARIANT_VIOLATION


class ConfigError(PkgcacheError):
    """Raised for an unreadable or invalid configuration file."""

    exit_code = EXIT_GENERIC_FAILURE
