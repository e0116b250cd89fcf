"""pkgcache -- per-package, user-scoped, disk-backed result caching.

Each client package gets its own namespace under the user cache directory.
Entries are stamped with their creation time and reads pass a maximum age,
so stale results are simply treated as missing.

Typical use::

    from pkgcache import CacheStore, cached

    ns = CacheStore().ensure("mypkg")

    @cached(ns, lifespan="1 day")
    def expensive(x, y):
        ...

Modules:
    cache: The expiring store, its backends and the run-or-fetch helpers.
    fingerprint: Stable cache keys derived from function calls.
    durations: Parsing of age thresholds such as ``"3 days"``.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading.
    exceptions: Exception hierarchy with exit-code mapping.
    app: The ``pkgcache`` maintenance command line.
"""

from pkgcache.cache import CacheStore, Namespace, cached, run_cached
from pkgcache.fingerprint import call_to_hash, describe_call, describe_caller

__version__ = "0.1.0"

__all__ = [
    "CacheStore",
    "Namespace",
    "cached",
    "call_to_hash",
    "describe_call",
    "describe_caller",
    "run_cached",
]
