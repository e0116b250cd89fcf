"""Disk-backed, age-aware result caching.

This package provides :class:`CacheStore`, which gives each client (an
owning package) an isolated namespace of timestamped entries, and the
:class:`Namespace` handle returned by :meth:`CacheStore.ensure`. Reads take a
maximum age and treat older entries as absent.

Storage goes through a :class:`BoardBackend`; :class:`DiskBoard` keeps each
namespace in its own :mod:`diskcache` directory under the user cache
directory (:func:`~pkgcache.config.get_cache_dir`), :class:`MemoryBoard`
keeps everything in memory.

:func:`run_cached` and :func:`cached` combine the store with
:mod:`pkgcache.fingerprint` to skip recomputation of repeated calls.
"""

from pkgcache.cache.backend import BoardBackend, DiskBoard, MemoryBoard
from pkgcache.cache.memoize import cached, run_cached
from pkgcache.cache.store import CacheStore, Namespace

__all__ = [
    "BoardBackend",
    "CacheStore",
    "DiskBoard",
    "MemoryBoard",
    "Namespace",
    "cached",
    "run_cached",
]
