"""Pydantic models shared across pkgcache modules.

The models fall into three groups:

**Configuration** -- persisted as JSON in the user's config directory:
    :class:`CacheConfig`.

**Cache records** -- what the backing store hands back and what
:meth:`~pkgcache.cache.store.CacheStore.list` returns:
    :class:`StoredEntry` and :class:`EntryInfo`.

**Call description** -- the structured input of the fingerprint generator:
    :class:`CallDescriptor`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_EXCLUDE_ARGS = ("use_cache", "cache_lifespan")


# --- Configuration ---


class CacheConfig(BaseModel):
    """User-wide cache settings persisted at ``~/.config/pkgcache/config.json``.

    Loaded and saved by :func:`~pkgcache.config.load_config` and
    :func:`~pkgcache.config.save_config`. Environment variables and CLI
    flags override these values, see :func:`~pkgcache.config.resolve_config`.

    Example::

        CacheConfig(root_dir="/tmp/pkgcache", default_max_age="12 hours")
    """

    root_dir: Optional[str] = Field(
        default=None,
        description="Directory holding one sub-directory per namespace "
        "(None = platform cache directory)",
    )
    default_max_age: str = Field(
        default="1 day", description="Age threshold used when a read passes none"
    )
    namespace_prefix: str = Field(
        default="pkgcache_", description="Literal prefix of every namespace name"
    )
    exclude_args: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_ARGS),
        description="Argument names never included in call fingerprints",
    )


# --- Cache records ---


class StoredEntry(BaseModel):
    """A raw record as returned by a :class:`~pkgcache.cache.backend.BoardBackend`.

    ``created`` is a POSIX timestamp in seconds. Entries written by foreign
    tools or older layouts carry no timestamp and report ``None``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    value: Any = None
    created: Optional[float] = None

    @property
    def created_at(self) -> Optional[datetime]:
        if self.created is None:
            return None
        return datetime.fromtimestamp(self.created, tz=timezone.utc)


class EntryInfo(BaseModel):
    """One row of a namespace listing: a key and its UTC creation time."""

    key: str
    created: datetime

    def age(self, now: datetime) -> float:
        """Seconds elapsed between ``created`` and *now*."""
        return (now - self.created).total_seconds()


# --- Call description ---


class CallDescriptor(BaseModel):
    """Structured description of a function call, used to derive a cache key.

    Build one with :func:`~pkgcache.fingerprint.describe_call` or
    :func:`~pkgcache.fingerprint.describe_caller`, or construct it directly
    when the call is not a plain Python call.

    Attributes:
        qualified_name: The function's qualified name. May carry an explicit
            owner as ``"package.module:function"``.
        args: ``(name, value)`` pairs in the order they were written in the
            call. Unsupplied defaults are not part of the list.
        namespace: Owning module of the function, when known.

    Example::

        CallDescriptor(qualified_name="fetch_rates", args=[("currency", "EUR")])
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    qualified_name: str
    args: list[tuple[str, Any]] = Field(default_factory=list)
    namespace: Optional[str] = None
