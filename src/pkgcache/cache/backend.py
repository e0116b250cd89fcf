"""Backing stores for cache namespaces.

A backing store keeps named namespaces of ``key -> value`` entries, each
entry optionally stamped with a creation timestamp. The
:class:`~pkgcache.cache.store.CacheStore` only talks to the
:class:`BoardBackend` interface, so storage can be swapped freely:

* :class:`DiskBoard` -- one :mod:`diskcache` directory per namespace. The
  creation timestamp travels as the diskcache entry ``tag``.
* :class:`MemoryBoard` -- plain dictionaries, for tests and throwaway use.

Registration (:meth:`BoardBackend.provision`) is idempotent and guarded by a
lock, so concurrent first use of a namespace within one process opens it
exactly once. Nothing here coordinates separate processes.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import diskcache

from pkgcache.models import StoredEntry

logger = logging.getLogger(__name__)

_MISSING = object()


class BoardBackend(ABC):
    """Capability interface every backing store implements."""

    @abstractmethod
    def provision(self, name: str) -> bool:
        """Open namespace *name*, creating its storage if absent.

        Returns:
            ``True`` if this call registered the namespace, ``False`` if it
            was already registered.
        """

    @abstractmethod
    def is_registered(self, name: str) -> bool:
        """Whether namespace *name* is currently open in this process."""

    @abstractmethod
    def deregister(self, name: str) -> bool:
        """Close namespace *name*, keeping its stored data.

        Returns:
            ``True`` if the namespace was registered.
        """

    @abstractmethod
    def list(self, name: str) -> list[StoredEntry]:
        """Return every entry of namespace *name*, values included."""

    @abstractmethod
    def put(self, name: str, key: str, value: Any, created: Optional[float]) -> None:
        """Write *value* under *key*, replacing any previous entry."""

    @abstractmethod
    def get(self, name: str, key: str) -> list[StoredEntry]:
        """Return the entries stored under *key* (normally zero or one)."""

    @abstractmethod
    def delete(self, name: str, key: str) -> bool:
        """Delete the entry under *key*. Returns ``True`` if one existed."""

    @abstractmethod
    def path(self, name: str) -> Optional[Path]:
        """Location of namespace *name* on disk, or ``None`` if not on disk."""

    def close(self) -> None:
        """Release every open namespace."""


class DiskBoard(BoardBackend):
    """Filesystem backend built on :class:`diskcache.Cache`.

    Each namespace maps to ``<root>/<name>/``. Values are stored through
    diskcache (pickled, large values spilled to files) and the creation
    timestamp is stored as the entry ``tag``; entries written without a tag
    are reported with ``created=None``.

    Args:
        root: Directory holding one sub-directory per namespace.

    Example::

        board = DiskBoard("/tmp/pkgcache")
        board.provision("pkgcache_mypkg")
        board.put("pkgcache_mypkg", "answer", 42, created=1700000000.0)
        board.get("pkgcache_mypkg", "answer")[0].value  # 42
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._caches: dict[str, diskcache.Cache] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def path(self, name: str) -> Path:
        return self._root / name

    def provision(self, name: str) -> bool:
        return self._open(name)[1]

    def _open(self, name: str) -> tuple[diskcache.Cache, bool]:
        """Return the open cache for *name* and whether this call opened it."""
        with self._lock:
            cache = self._caches.get(name)
            if cache is not None:
                return cache, False
            directory = self.path(name)
            is_new = not directory.exists()
            cache = self._caches[name] = diskcache.Cache(str(directory))
        if is_new:
            logger.debug("Created namespace '%s' at %s", name, directory)
        else:
            logger.debug("Opened namespace '%s' at %s", name, directory)
        return cache, True

    def is_registered(self, name: str) -> bool:
        return name in self._caches

    def deregister(self, name: str) -> bool:
        with self._lock:
            cache = self._caches.pop(name, None)
        if cache is None:
            return False
        cache.close()
        logger.debug("Closed namespace '%s'", name)
        return True

    def _cache(self, name: str) -> diskcache.Cache:
        return self._open(name)[0]

    def list(self, name: str) -> list[StoredEntry]:
        cache = self._cache(name)
        entries: list[StoredEntry] = []
        for key in list(cache.iterkeys()):
            value, tag = cache.get(key, default=_MISSING, tag=True)
            if value is _MISSING:
                # Deleted between listing the keys and reading the entry.
                continue
            entries.append(StoredEntry(key=str(key), value=value, created=_as_timestamp(tag)))
        return entries

    def put(self, name: str, key: str, value: Any, created: Optional[float]) -> None:
        self._cache(name).set(key, value, tag=created)

    def get(self, name: str, key: str) -> list[StoredEntry]:
        value, tag = self._cache(name).get(key, default=_MISSING, tag=True)
        if value is _MISSING:
            return []
        return [StoredEntry(key=key, value=value, created=_as_timestamp(tag))]

    def delete(self, name: str, key: str) -> bool:
        return bool(self._cache(name).delete(key))

    def close(self) -> None:
        with self._lock:
            caches = list(self._caches.values())
            self._caches.clear()
        for cache in caches:
            cache.close()


class MemoryBoard(BoardBackend):
    """In-process backend keeping entries in dictionaries.

    Data survives :meth:`deregister` (like files on disk do) but not the
    process.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, tuple[Any, Optional[float]]]] = {}
        self._registered: set[str] = set()
        self._lock = threading.Lock()

    def path(self, name: str) -> Optional[Path]:
        return None

    def provision(self, name: str) -> bool:
        with self._lock:
            if name in self._registered:
                return False
            self._registered.add(name)
            self._data.setdefault(name, {})
        logger.debug("Registered in-memory namespace '%s'", name)
        return True

    def is_registered(self, name: str) -> bool:
        return name in self._registered

    def deregister(self, name: str) -> bool:
        with self._lock:
            if name not in self._registered:
                return False
            self._registered.discard(name)
        return True

    def _table(self, name: str) -> dict[str, tuple[Any, Optional[float]]]:
        self.provision(name)
        return self._data[name]

    def list(self, name: str) -> list[StoredEntry]:
        return [
            StoredEntry(key=key, value=value, created=created)
            for key, (value, created) in list(self._table(name).items())
        ]

    def put(self, name: str, key: str, value: Any, created: Optional[float]) -> None:
        self._table(name)[key] = (value, created)

    def get(self, name: str, key: str) -> list[StoredEntry]:
        record = self._table(name).get(key)
        if record is None:
            return []
        value, created = record
        return [StoredEntry(key=key, value=value, created=created)]

    def delete(self, name: str, key: str) -> bool:
        return self._table(name).pop(key, _MISSING) is not _MISSING

    def close(self) -> None:
        with self._lock:
            self._registered.clear()


def _as_timestamp(tag: Any) -> Optional[float]:
    """Interpret a diskcache tag as a POSIX timestamp; anything else means no timestamp."""
    if isinstance(tag, bool) or not isinstance(tag, (int, float)):
        return None
    return float(tag)
