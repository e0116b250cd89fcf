"""Run-or-fetch helpers on top of a :class:`~pkgcache.cache.store.Namespace`.

:func:`run_cached` computes a call's fingerprint, returns a fresh cached
result when there is one, and otherwise runs the call and stores what it
returns. :func:`cached` wraps a function so that every call goes through
:func:`run_cached`; the wrapped function gains two keyword arguments:

* ``use_cache`` -- ``False`` skips the lookup and refreshes the entry.
* ``cache_lifespan`` -- overrides the maximum age for this call.

Neither reaches the wrapped function, and neither is part of the key.

Example::

    store = CacheStore()
    ns = store.ensure("mypkg")

    @cached(ns, lifespan="12 hours")
    def fetch_rates(currency: str) -> dict:
        ...

    fetch_rates("EUR")                    # computed and stored
    fetch_rates("EUR")                    # served from the cache
    fetch_rates("EUR", use_cache=False)   # recomputed and re-stored
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from pkgcache.durations import DurationLike
from pkgcache.exceptions import InvalidArgumentError
from pkgcache.fingerprint import DEFAULT_EXCLUDE, ExcludeLike, call_to_hash, describe_call

if TYPE_CHECKING:
    from pkgcache.cache.store import Namespace

logger = logging.getLogger(__name__)

_MISS = object()

_CONTROL_NAMES = ("use_cache", "cache_lifespan")


def run_cached(
    namespace: Namespace,
    func: Callable[..., Any],
    /,
    *args: Any,
    use_cache: bool = True,
    cache_lifespan: DurationLike = None,
    key: Optional[str] = None,
    include_namespace: bool = True,
    exclude: ExcludeLike = DEFAULT_EXCLUDE,
    **kwargs: Any,
) -> Any:
    """Return ``func(*args, **kwargs)``, reusing a fresh cached result if any.

    Args:
        namespace: Where results are stored.
        func: The function to run.
        use_cache: When ``False`` the lookup is skipped; the result is still
            stored so later calls see the refreshed value.
        cache_lifespan: Maximum age of a reusable result. Defaults to the
            store's ``default_max_age``.
        key: Explicit cache key. Derived with
            :func:`~pkgcache.fingerprint.call_to_hash` when omitted.
        include_namespace: Passed to ``call_to_hash``.
        exclude: Passed to ``call_to_hash``.
    """
    return _run(namespace, func, args, kwargs, use_cache, cache_lifespan, key, include_namespace, exclude)


def _run(
    namespace: Namespace,
    func: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    use_cache: bool,
    lifespan: DurationLike,
    key: Optional[str],
    include_namespace: bool,
    exclude: ExcludeLike,
) -> Any:
    if key is None:
        key = call_to_hash(
            describe_call(func, *args, **kwargs),
            include_namespace=include_namespace,
            exclude=exclude,
        )

    if use_cache:
        hit = namespace.get(key, max_age=lifespan, default=_MISS)
        if hit is not _MISS:
            return hit
    else:
        logger.debug("Cache bypassed for '%s'", key)

    result = func(*args, **kwargs)
    return namespace.put(key, result)


def cached(
    namespace: Namespace,
    lifespan: DurationLike = None,
    include_namespace: bool = True,
    exclude: ExcludeLike = DEFAULT_EXCLUDE,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator form of :func:`run_cached`.

    Args:
        namespace: Where results are stored.
        lifespan: Default maximum age for calls that pass no
            ``cache_lifespan``.
        include_namespace: Prefix keys with the function's module.
        exclude: Argument names left out of the key.

    Raises:
        InvalidArgumentError: If the decorated function declares a
            ``use_cache`` or ``cache_lifespan`` parameter of its own.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        _check_control_names(func)

        @functools.wraps(func)
        def wrapper(*args: Any, use_cache: bool = True, cache_lifespan: DurationLike = None, **kwargs: Any) -> Any:
            return _run(
                namespace,
                func,
                args,
                kwargs,
                use_cache,
                lifespan if cache_lifespan is None else cache_lifespan,
                None,
                include_namespace,
                exclude,
            )

        wrapper.cache_namespace = namespace  # type: ignore[attr-defined]
        return wrapper

    return decorator


def _check_control_names(func: Callable[..., Any]) -> None:
    try:
        parameters = inspect.signature(func).parameters
    except (TypeError, ValueError):
        return
    taken = [
        name
        for name in _CONTROL_NAMES
        if name in parameters and parameters[name].kind is not inspect.Parameter.VAR_KEYWORD
    ]
    if taken:
        raise InvalidArgumentError(
            f"{getattr(func, '__qualname__', func)!r} declares {', '.join(taken)}, "
            "which the cached wrapper reserves; rename the parameter or use run_cached"
        )
