"""Call fingerprinting: turn a function call into a stable cache key.

A fingerprint has the shape ``[namespace "-"] name ["-" argument_hash]``.
It is a pure function of the function's qualified name, its owning module
and the ordered values of the arguments that were actually supplied.
Arguments that only steer caching (``use_cache``, ``cache_lifespan``) are
excluded by default so that toggling them never changes the key.

Calls are described explicitly with a :class:`~pkgcache.models.CallDescriptor`.
:func:`describe_call` builds one from a callable and the arguments about to
be passed to it; :func:`describe_caller` builds one from a live frame for the
common "cache my own result" case.

Example::

    from pkgcache.fingerprint import call_to_hash, describe_call

    key = call_to_hash(describe_call(fetch_rates, "EUR", day="2024-01-31"))
    # 'mypkg.rates-fetch_rates-3f1c0a9b2d7e4c51'
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import json
import pickle
import re
import sys
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from enum import Enum
from pathlib import PurePath
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel

from pkgcache.exceptions import InvalidArgumentError
from pkgcache.models import DEFAULT_EXCLUDE_ARGS, CallDescriptor

DEFAULT_EXCLUDE = DEFAULT_EXCLUDE_ARGS

ExcludeLike = Union[str, Iterable[str], None]

_SEGMENT = r"(?:[A-Za-z_]\w*|<locals>|<genexpr>|<listcomp>|<dictcomp>)"
_QUALNAME_RE = re.compile(rf"^{_SEGMENT}(?:\.{_SEGMENT})*$")
_MODULE_RE = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")


# --- Building descriptors ---


def describe_call(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> CallDescriptor:
    """Describe the call ``func(*args, **kwargs)`` without performing it.

    Positional arguments are matched to parameter names through the
    function's signature. Defaults are not applied: only what the caller
    supplied ends up in :attr:`~pkgcache.models.CallDescriptor.args`.
    Callables without an introspectable signature get positional names
    ``"..1"``, ``"..2"`` and so on.

    A :func:`functools.partial` is described as a call to the function it
    wraps, with its pre-bound arguments merged in. A bound method carries
    its instance as the leading argument.

    Raises:
        InvalidArgumentError: If the arguments do not fit the signature, or
            *func* is a lambda, which has no stable name.
    """
    target = inspect.unwrap(func)
    while isinstance(target, functools.partial):
        args = (*target.args, *args)
        kwargs = {**target.keywords, **kwargs}
        target = inspect.unwrap(target.func)

    name = getattr(target, "__qualname__", None) or getattr(target, "__name__", None)
    if not name and callable(target):
        # Callable instance: named after its class.
        name = type(target).__qualname__
    if not isinstance(name, str) or not name:
        raise InvalidArgumentError(f"Cannot determine the name of {func!r}")
    if "<lambda>" in name:
        raise InvalidArgumentError(f"Cannot fingerprint lambda {func!r}; pass an explicit key")

    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        signature = None

    pairs: list[tuple[str, Any]]
    if signature is None:
        pairs = [(f"..{i}", value) for i, value in enumerate(args, start=1)]
        pairs.extend(kwargs.items())
    else:
        try:
            bound = signature.bind(*args, **kwargs)
        except TypeError as exc:
            raise InvalidArgumentError(f"Arguments do not match {name}{signature}: {exc}") from exc
        pairs = []
        for param_name, value in bound.arguments.items():
            if signature.parameters[param_name].kind is inspect.Parameter.VAR_KEYWORD:
                pairs.extend(value.items())
            else:
                pairs.append((param_name, value))
    if inspect.ismethod(target):
        pairs.insert(0, (_first_parameter(target.__func__), target.__self__))

    return CallDescriptor(
        qualified_name=name,
        args=pairs,
        namespace=getattr(target, "__module__", None),
    )


def _first_parameter(func: Callable[..., Any]) -> str:
    try:
        return next(iter(inspect.signature(func).parameters))
    except (TypeError, ValueError, StopIteration):
        return "self"


def describe_caller(depth: int = 1) -> CallDescriptor:
    """Describe the function call running *depth* frames above the caller.

    ``depth=1`` is the function that called :func:`describe_caller`,
    ``depth=2`` that function's caller, and so on. Argument values are read
    from the frame's own bindings, so a parameter forwarded through several
    wrappers resolves to the value the target frame actually received.
    A frame cannot tell supplied values from defaults, so every parameter
    is included.

    Raises:
        InvalidArgumentError: If *depth* is not a positive integer, the
            stack is not that deep, or the frame is not inside a function.
    """
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise InvalidArgumentError(f"Stack depth must be a positive integer, got {depth!r}")

    frame = inspect.currentframe()
    try:
        target = frame.f_back if frame is not None else None
        for _ in range(depth - 1):
            if target is None:
                break
            target = target.f_back
        if target is None:
            raise InvalidArgumentError(f"No call frame at stack depth {depth}")

        code = target.f_code
        if code.co_name == "<module>":
            raise InvalidArgumentError(
                f"Stack depth {depth} points at module-level code, not a function call"
            )

        n_params = code.co_argcount + code.co_kwonlyargcount
        if code.co_flags & inspect.CO_VARARGS:
            n_params += 1
        names = code.co_varnames[:n_params]
        local_vars = target.f_locals
        pairs = [(name, local_vars[name]) for name in names if name in local_vars]
        if code.co_flags & inspect.CO_VARKEYWORDS:
            pairs.extend(local_vars.get(code.co_varnames[n_params], {}).items())

        return CallDescriptor(
            qualified_name=getattr(code, "co_qualname", code.co_name),
            args=pairs,
            namespace=target.f_globals.get("__name__"),
        )
    finally:
        del frame


# --- Hashing ---

_PICKLE_PROTOCOL = 4


def _type_name(value: Any) -> str:
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def _sort_canonical(items: Iterable[Any]) -> list[Any]:
    return sorted(items, key=lambda item: json.dumps(item, separators=(",", ":")))


def _callable_identity(value: Any) -> list[Any]:
    qualname = getattr(value, "__qualname__", None)
    module = getattr(value, "__module__", None)
    if not isinstance(qualname, str) or "<lambda>" in qualname:
        raise InvalidArgumentError(f"Cannot fingerprint anonymous callable {value!r}")
    return ["callable", module, qualname]


def _has_default_state(value: Any) -> bool:
    """True when pickling *value* would just copy its ``__dict__``."""
    cls = type(value)
    return (
        hasattr(value, "__dict__")
        and not hasattr(cls, "__slots__")
        and cls.__reduce_ex__ is object.__reduce_ex__
        and cls.__reduce__ is object.__reduce__
        and getattr(cls, "__getstate__", None) is getattr(object, "__getstate__", None)
        and all(base.__module__ != "builtins" for base in cls.__mro__[:-1])
    )


def _canonical(value: Any) -> Any:
    """Return a type-tagged, JSON-serialisable form of *value*.

    Strings, ints, floats, booleans and ``None`` stay as they are. Every
    other value becomes a ``[tag, ...]`` list, so a tuple never collides
    with a list and a ``bytes`` value never collides with a dict that
    happens to look like its encoding. Dicts and sets are ordered by the
    JSON text of their canonical members, which makes mixed and non-string
    keys safe.

    Raises:
        InvalidArgumentError: If *value* cannot be encoded by content.
    """
    if value is None or type(value) in (bool, int, float, str):
        return value
    if isinstance(value, Enum):
        return ["enum", _type_name(value), value.name]
    if type(value) in (list, tuple):
        return [type(value).__name__, [_canonical(item) for item in value]]
    if type(value) is dict:
        pairs = [[_canonical(k), _canonical(v)] for k, v in value.items()]
        return ["dict", _sort_canonical(pairs)]
    if type(value) in (set, frozenset):
        return [type(value).__name__, _sort_canonical(_canonical(item) for item in value)]
    if isinstance(value, (bytes, bytearray)):
        return [type(value).__name__, bytes(value).hex()]
    if isinstance(value, datetime):
        return ["datetime", value.isoformat()]
    if isinstance(value, (date, time)):
        return [type(value).__name__, value.isoformat()]
    if isinstance(value, timedelta):
        return ["timedelta", [value.days, value.seconds, value.microseconds]]
    if isinstance(value, PurePath):
        return ["path", _type_name(value), value.as_posix()]
    if isinstance(value, BaseModel):
        return ["model", _type_name(value), _canonical(value.model_dump())]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return ["dataclass", _type_name(value), _canonical(fields)]
    if inspect.ismethod(value):
        return ["method", _canonical(value.__self__), _callable_identity(value.__func__)]
    if isinstance(value, functools.partial):
        return [
            "partial",
            _canonical(value.func),
            _canonical(value.args),
            _canonical(dict(value.keywords)),
        ]
    if inspect.isbuiltin(value) and not (value.__self__ is None or inspect.ismodule(value.__self__)):
        return ["method", _canonical(value.__self__), ["callable", None, value.__qualname__]]
    if inspect.isfunction(value) or inspect.isbuiltin(value) or isinstance(value, type):
        return _callable_identity(value)
    if _has_default_state(value):
        return ["object", _type_name(value), _canonical(dict(vars(value)))]

    try:
        payload = pickle.dumps(value, protocol=_PICKLE_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as exc:
        raise InvalidArgumentError(
            f"Cannot fingerprint argument of type {_type_name(value)}: {exc}; "
            "pass an explicit key instead"
        ) from exc
    return ["pickle", _type_name(value), hashlib.blake2b(payload, digest_size=16).hexdigest()]


def hash_args(args: list[tuple[str, Any]]) -> str:
    """Return a short hex digest of ordered ``(name, value)`` pairs.

    The digest is order-sensitive: it follows the order the arguments were
    written in. Values are hashed by content and type; see
    :func:`_canonical`.

    Raises:
        InvalidArgumentError: If a value cannot be encoded by content.
    """
    payload = json.dumps(
        [[name, _canonical(value)] for name, value in args],
        separators=(",", ":"),
    )
    return hashlib.blake2b(payload.encode("utf-8"), digest_size=8).hexdigest()


# --- Key construction ---


def _normalise_exclude(exclude: ExcludeLike) -> frozenset[str]:
    if exclude is None:
        return frozenset()
    if isinstance(exclude, str):
        return frozenset((exclude,))
    try:
        names = list(exclude)
    except TypeError:
        raise InvalidArgumentError(
            f"exclude must be None, a string or an iterable of strings, got {exclude!r}"
        ) from None
    for name in names:
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError(f"exclude entries must be non-empty strings, got {name!r}")
    return frozenset(names)


def _split_qualified_name(qualified_name: str) -> tuple[Optional[str], str]:
    """Split ``"pkg.mod:func"`` into its owner and name, validating both parts."""
    if not isinstance(qualified_name, str):
        raise InvalidArgumentError(f"Qualified name must be a string, got {qualified_name!r}")
    owner, sep, name = qualified_name.rpartition(":")
    if sep and (":" in owner or not _MODULE_RE.match(owner)):
        raise InvalidArgumentError(f"Unrecognised qualified name form: {qualified_name!r}")
    if not _QUALNAME_RE.match(name):
        raise InvalidArgumentError(f"Unrecognised qualified name form: {qualified_name!r}")
    return (owner if sep else None), name


def resolve_namespace(name: str) -> Optional[str]:
    """Find the module defining a callable with qualified name *name*.

    Loaded modules are searched in import order and the first module whose
    top-level attribute chain leads to a callable defined in that same
    module wins. Returns ``None`` when nothing matches.
    """
    if "<" in name:
        return None
    parts = name.split(".")
    for module_name, module in list(sys.modules.items()):
        if module is None:
            continue
        obj: Any = module
        try:
            for part in parts:
                obj = getattr(obj, part)
        except Exception:
            continue
        if callable(obj) and getattr(obj, "__module__", None) == module_name:
            return module_name
    return None


def call_to_hash(
    call: CallDescriptor,
    include_namespace: bool = True,
    exclude: ExcludeLike = DEFAULT_EXCLUDE,
) -> str:
    """Build the cache key for *call*.

    Args:
        call: The call to fingerprint.
        include_namespace: Prefix the key with the function's owning module.
            The prefix is left out when no owner can be determined.
        exclude: Argument names left out of the hash. ``None`` excludes
            nothing; the default drops ``use_cache`` and ``cache_lifespan``.

    Returns:
        ``[namespace "-"] name ["-" hash]``; the hash segment is omitted when
        no argument is left after filtering.

    Raises:
        InvalidArgumentError: For an unrecognised qualified name or a
            malformed *exclude*.

    Example::

        >>> call_to_hash(CallDescriptor(qualified_name="f"), include_namespace=False)
        'f'
    """
    excluded = _normalise_exclude(exclude)
    owner, name = _split_qualified_name(call.qualified_name)

    parts: list[str] = []
    if include_namespace:
        namespace = owner or call.namespace or resolve_namespace(name)
        if namespace:
            parts.append(namespace)
    parts.append(name)

    kept = [(arg_name, value) for arg_name, value in call.args if arg_name not in excluded]
    if kept:
        parts.append(hash_args(kept))
    return "-".join(parts)


def fingerprint(
    func: Callable[..., Any],
    /,
    *args: Any,
    **kwargs: Any,
) -> str:
    """Shortcut for ``call_to_hash(describe_call(func, *args, **kwargs))``."""
    return call_to_hash(describe_call(func, *args, **kwargs))
