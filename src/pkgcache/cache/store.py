"""Expiring, namespaced cache store.

:class:`CacheStore` gives every client (usually a package, identified by its
name) an isolated namespace in a :class:`~pkgcache.cache.backend.BoardBackend`.
Each write stamps the entry with the current UTC time; each read takes a
maximum age and treats older entries as absent. Staleness is computed at read
time only: nothing expires in the background and a stale read leaves the
entry where it is. :meth:`CacheStore.clear` is the explicit way to drop old
entries.

:meth:`CacheStore.ensure` returns a :class:`Namespace` handle carrying the
client binding, so code that works with a single client does not repeat the
identifier on every call::

    store = CacheStore()
    ns = store.ensure("mypkg")
    ns.put("rates", {"EUR": 1.08})
    ns.get("rates", max_age="1 day")   # {'EUR': 1.08}
    ns.clear(max_age="7 days")         # keys older than a week
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from pkgcache.cache.backend import BoardBackend, DiskBoard
from pkgcache.durations import DurationLike, parse_duration
from pkgcache.exceptions import CorruptionError, InvalidArgumentError, InvariantViolationError
from pkgcache.models import CacheConfig, EntryInfo

logger = logging.getLogger(__name__)

_CLIENT_RE = re.compile(r"^[A-Za-z][A-Za-z0-9._-]*$")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_key(key: Any) -> str:
    if not isinstance(key, str) or not key:
        raise InvalidArgumentError(f"Cache key must be a non-empty string, got {key!r}")
    return key


class Namespace:
    """Handle on one client's namespace, returned by :meth:`CacheStore.ensure`.

    Every operation re-provisions the namespace first, so a handle stays
    usable after :meth:`CacheStore.teardown`.

    Attributes:
        client: The owning client's identifier.
        name: The backing namespace name (prefix + client).
        created: Whether the :meth:`CacheStore.ensure` call that produced
            this handle registered the namespace.
    """

    def __init__(self, store: CacheStore, client: str, name: str, created: bool) -> None:
        self._store = store
        self.client = client
        self.name = name
        self.created = created

    def __repr__(self) -> str:
        return f"Namespace(client={self.client!r}, name={self.name!r})"

    @property
    def path(self) -> Optional[Path]:
        """On-disk location of this namespace (diagnostics only)."""
        return self._store.backend.path(self.name)

    def list(self) -> list[EntryInfo]:
        """Return ``(key, created)`` rows for every timestamped entry."""
        backend = self._store.backend
        backend.provision(self.name)
        rows: list[EntryInfo] = []
        skipped = 0
        for entry in backend.list(self.name):
            created = entry.created_at
            if created is None:
                skipped += 1
                continue
            rows.append(EntryInfo(key=entry.key, created=created))
        if skipped:
            logger.warning(
                "Namespace '%s' holds %d entr%s without a creation timestamp; "
                "they are not listed",
                self.name,
                skipped,
                "y" if skipped == 1 else "ies",
            )
        return rows

    def put(self, key: str, value: Any) -> Any:
        """Store *value* under *key* stamped with the current time; return *value*."""
        _check_key(key)
        backend = self._store.backend
        backend.provision(self.name)
        backend.put(self.name, key, value, self._store.now().timestamp())
        logger.debug("Stored '%s' in namespace '%s'", key, self.name)
        return value

    def get(self, key: str, max_age: DurationLike = None, default: Any = None) -> Any:
        """Return the value under *key* if it is at most *max_age* old.

        Args:
            key: Entry key.
            max_age: Age threshold (``"1 day"``, seconds, ``timedelta`` or
                ``"never"``). Defaults to the store's ``default_max_age``.
            default: Returned when the entry is absent or stale.

        Raises:
            CorruptionError: If the entry has no creation timestamp. Delete
                the namespace directory (see :attr:`path`) and retry.
            InvariantViolationError: If the key resolves to several entries.
        """
        _check_key(key)
        limit = self._store.max_age(max_age)
        backend = self._store.backend
        backend.provision(self.name)

        matches = backend.get(self.name, key)
        if not matches:
            logger.debug("Cache miss for '%s' in namespace '%s'", key, self.name)
            return default
        if len(matches) > 1:
            raise InvariantViolationError(
                f"Found {len(matches)} entries for key '{key}' in namespace "
                f"'{self.name}'; keys must be unique"
            )

        entry = matches[0]
        created = entry.created_at
        if created is None:
            location = self.path
            where = f"delete {location} and retry" if location else "delete the namespace and retry"
            raise CorruptionError(
                f"Entry '{key}' in namespace '{self.name}' has no creation timestamp; "
                f"the namespace is corrupted: {where}",
                path=location,
            )

        if limit is not None and self._store.now() - created > limit:
            logger.debug("Stale entry '%s' in namespace '%s'", key, self.name)
            return default
        logger.debug("Cache hit for '%s' in namespace '%s'", key, self.name)
        return entry.value

    def remove(self, key: str) -> bool:
        """Delete the entry under *key*; ``False`` if there was none."""
        _check_key(key)
        backend = self._store.backend
        backend.provision(self.name)
        return backend.delete(self.name, key)

    def clear(self, max_age: DurationLike = "1 day") -> set[str]:
        """Delete every entry older than *max_age* and return the deleted keys.

        Entries exactly *max_age* old are kept. Deletion is per entry; an
        interrupted clear is finished by calling it again.
        """
        limit = parse_duration(max_age)
        if limit is None:
            return set()
        now = self._store.now()
        removed: set[str] = set()
        for info in self.list():
            if now - info.created > limit:
                if self._store.backend.delete(self.name, info.key):
                    removed.add(info.key)
        if removed:
            logger.info("Cleared %d stale entries from namespace '%s'", len(removed), self.name)
        return removed

    def run(self, func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
        """Run ``func(*args, **kwargs)`` through this namespace, see :func:`~pkgcache.cache.memoize.run_cached`."""
        from pkgcache.cache.memoize import run_cached

        kwargs.setdefault("exclude", self._store.config.exclude_args)
        return run_cached(self, func, *args, **kwargs)

    def cached(self, lifespan: DurationLike = None, **options: Any) -> Callable[..., Any]:
        """Decorator caching results in this namespace, see :func:`~pkgcache.cache.memoize.cached`."""
        from pkgcache.cache.memoize import cached

        options.setdefault("exclude", self._store.config.exclude_args)
        return cached(self, lifespan=lifespan, **options)


class CacheStore:
    """Age-aware key/value store with one namespace per client.

    Args:
        backend: Backing store. Defaults to a :class:`DiskBoard` rooted at
            the configured cache directory.
        config: Settings for the namespace prefix, the default age
            threshold and the default fingerprint exclusions.
        clock: Returns the current time as an aware UTC ``datetime``.
            Replaceable for tests.
    """

    def __init__(
        self,
        backend: Optional[BoardBackend] = None,
        config: Optional[CacheConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config or CacheConfig()
        if backend is None:
            from pkgcache.config import resolve_cache_root

            backend = DiskBoard(resolve_cache_root(self._config))
        self._backend = backend
        self._clock = clock or _utcnow

    @classmethod
    def from_config(cls, **overrides: Any) -> CacheStore:
        """Create a store from :func:`~pkgcache.config.resolve_config`."""
        from pkgcache.config import resolve_config

        return cls(config=resolve_config(**overrides))

    @property
    def backend(self) -> BoardBackend:
        return self._backend

    @property
    def config(self) -> CacheConfig:
        return self._config

    def now(self) -> datetime:
        return self._clock()

    def max_age(self, value: DurationLike = None) -> Optional[timedelta]:
        """Parse *value*, falling back to the configured default threshold."""
        return parse_duration(self._config.default_max_age if value is None else value)

    # ------------------------------------------------------------------ #
    # Namespaces
    # ------------------------------------------------------------------ #

    def namespace_name(self, client: str) -> str:
        """Return the backing namespace name for *client*.

        Raises:
            InvalidArgumentError: If *client* is not a valid identifier.
        """
        if not isinstance(client, str) or not _CLIENT_RE.match(client):
            raise InvalidArgumentError(
                f"Invalid client identifier {client!r}: use letters, digits, '.', '_' or '-', "
                "starting with a letter"
            )
        return f"{self._config.namespace_prefix}{client}"

    def path(self, client: str) -> Optional[Path]:
        """On-disk location of *client*'s namespace, for diagnostics and manual cleanup."""
        return self._backend.path(self.namespace_name(client))

    def ensure(self, client: str) -> Namespace:
        """Provision *client*'s namespace if needed and return its handle.

        Safe to call repeatedly and from several threads; the namespace is
        registered once and ``handle.created`` is ``True`` only for the
        call that registered it.
        """
        name = self.namespace_name(client)
        created = self._backend.provision(name)
        return Namespace(self, client, name, created)

    def teardown(self, client: str) -> bool:
        """Deregister *client*'s namespace from this process; disk contents stay.

        Returns:
            ``True`` if the namespace was registered.
        """
        return self._backend.deregister(self.namespace_name(client))

    def close(self) -> None:
        """Deregister every namespace and release backend resources."""
        self._backend.close()

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Client-keyed shortcuts
    # ------------------------------------------------------------------ #

    def list(self, client: str) -> list[EntryInfo]:
        """See :meth:`Namespace.list`."""
        return self.ensure(client).list()

    def put(self, client: str, key: str, value: Any) -> Any:
        """See :meth:`Namespace.put`."""
        return self.ensure(client).put(key, value)

    def get(self, client: str, key: str, max_age: DurationLike = None, default: Any = None) -> Any:
        """See :meth:`Namespace.get`."""
        return self.ensure(client).get(key, max_age=max_age, default=default)

    def remove(self, client: str, key: str) -> bool:
        """See :meth:`Namespace.remove`."""
        return self.ensure(client).remove(key)

    def clear(self, client: str, max_age: DurationLike = "1 day") -> set[str]:
        """See :meth:`Namespace.clear`."""
        return self.ensure(client).clear(max_age=max_age)

