"""Parsing of human-readable age thresholds such as ``"1 day"`` or ``"12 hours"``.

An age threshold is never stored with an entry; it is supplied at read time
and compared against ``now - created``. :func:`parse_duration` normalises
every accepted spelling to a :class:`~datetime.timedelta`, or ``None`` for
"no limit".
"""

from __future__ import annotations

import math
import re
from datetime import timedelta
from typing import Optional, Union

from pkgcache.exceptions import InvalidArgumentError

DurationLike = Union[str, int, float, timedelta, None]

_UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "wk": 604800,
    "wks": 604800,
    "week": 604800,
    "weeks": 604800,
}

_INFINITE = {"inf", "infinite", "infinity", "never"}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*$")


def parse_duration(value: DurationLike) -> Optional[timedelta]:
    """Convert *value* into a :class:`~datetime.timedelta`.

    Accepted forms:
        - a non-negative :class:`~datetime.timedelta` (returned unchanged)
        - a non-negative ``int`` or ``float`` number of seconds
        - ``"<number> <unit>"`` where unit is second, minute, hour, day or
          week (singular, plural or abbreviated: ``s``, ``min``, ``h``,
          ``d``, ``w`` ...)
        - ``math.inf``, ``"inf"``, ``"infinite"`` or ``"never"`` for no limit

    Returns:
        The duration, or ``None`` when the threshold is infinite.

    Raises:
        InvalidArgumentError: For negative, empty, boolean or unrecognised
            values.

    Example::

        >>> parse_duration("3 days")
        datetime.timedelta(days=3)
        >>> parse_duration("never") is None
        True
    """
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(f"Invalid duration: {value!r}")

    if isinstance(value, timedelta):
        if value < timedelta(0):
            raise InvalidArgumentError(f"Duration must not be negative: {value}")
        return value

    if isinstance(value, (int, float)):
        if math.isnan(value) or value < 0:
            raise InvalidArgumentError(f"Duration must be a non-negative number: {value!r}")
        if math.isinf(value):
            return None
        return timedelta(seconds=value)

    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"Duration must be a string, number or timedelta, got {type(value).__name__}"
        )

    text = value.strip().lower()
    if text in _INFINITE:
        return None

    match = _DURATION_RE.match(text)
    if match is None:
        raise InvalidArgumentError(
            f"Invalid duration {value!r}; expected e.g. '1 day', '12 hours', '30 min'"
        )
    amount, unit = match.groups()
    seconds = _UNIT_SECONDS.get(unit)
    if seconds is None:
        raise InvalidArgumentError(f"Unknown duration unit {unit!r} in {value!r}")
    return timedelta(seconds=float(amount) * seconds)


def format_age(seconds: float) -> str:
    """Render an age in seconds as a short human string (``"2d 3h"``, ``"45s"``)."""
    seconds = max(0, int(seconds))
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
