import re
from datetime import timedelta

from ..errors import InvalidDuration

_DURATION_RE = re.compile(r"^\s*(\d+)(ms|s|m)?\s*$")


def parse_timeout(value: str) -> timedelta:
    """
    Parses a duration such as ``500ms``, ``10s`` or ``2m``.

    A bare number is only accepted when it is ``0``.
    """
    match = _DURATION_RE.match(value)
    if not match:
        raise InvalidDuration(f"invalid duration: {value!r}")

    magnitude = int(match.group(1))
    unit = match.group(2)
    if unit is None:
        if magnitude == 0:
            return timedelta(0)
        raise InvalidDuration(f"invalid duration: {value!r} (missing unit)")
    if unit == "ms":
        return timedelta(milliseconds=magnitude)
    if unit == "s":
        return timedelta(seconds=magnitude)
    return timedelta(minutes=magnitude)
