"""Look-back duration parsing.

Accepts calendar-style shorthands (``7d``, ``1w``, ``3mo``, ``1y``) and
compound clock durations (``24h``, ``1h30m``, ``500ms``).
"""

import re
from datetime import UTC, datetime, timedelta

# Calendar units are fixed-length approximations
_CALENDAR_UNITS: dict[str, timedelta] = {
    "y": timedelta(days=365),
    "mo": timedelta(days=30),
    "w": timedelta(weeks=1),
    "d": timedelta(days=1),
}

_CLOCK_UNITS_US: dict[str, float] = {
    "h": 3_600_000_000,
    "m": 60_000_000,
    "s": 1_000_000,
    "ms": 1_000,
    "us": 1,
    "µs": 1,
    "ns": 0.001,
}

_NUMBER = r"(?:\d+(?:\.\d*)?|\.\d+)"
_CALENDAR_RE = re.compile(rf"^({_NUMBER})(y|mo|w|d)$")
_CLOCK_PART = rf"({_NUMBER})(ns|us|µs|ms|s|m|h)"
_CLOCK_RE = re.compile(rf"^(?:{_CLOCK_PART})+$")
_CLOCK_PART_RE = re.compile(_CLOCK_PART)


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed or is out of range."""

    def __init__(self, value: str, reason: str | None = None) -> None:
        super().__init__(
            f"Invalid duration '{value}': "
            + (reason or "use e.g. 24h, 1h30m, 7d, 1w, 3mo or 1y")
        )
        self.value = value


def parse_duration(value: str) -> timedelta:
    """Parse a look-back duration.

    Args:
        value: Duration string such as "24h", "7d", "1w", "3mo", "1y" or "1h30m"

    Returns:
        Equivalent timedelta

    Raises:
        DurationParseError: If the string is malformed or too large.
    """
    text = value.strip()
    if text == "0":
        return timedelta(0)

    try:
        match = _CALENDAR_RE.match(text)
        if match:
            return float(match.group(1)) * _CALENDAR_UNITS[match.group(2)]

        if _CLOCK_RE.match(text):
            # Summed in microseconds; ns terms would round to zero individually
            micros = sum(float(n) * _CLOCK_UNITS_US[u] for n, u in _CLOCK_PART_RE.findall(text))
            return timedelta(microseconds=micros)
    except OverflowError as e:
        raise DurationParseError(value, "too large") from e

    raise DurationParseError(value)


def resolve_since(
    value: str | timedelta | datetime | None,
    default: str,
    now: datetime | None = None,
) -> datetime:
    """Turn a look-back value into an absolute UTC start time.

    Args:
        value: Duration string, timedelta, absolute datetime, or None for the default
        default: Duration string used when value is None
        now: Reference time (defaults to the current UTC time)

    Returns:
        Timezone-aware UTC datetime

    Raises:
        DurationParseError: If the duration is malformed or reaches before year 1.
    """
    now = now or datetime.now(UTC)
    if isinstance(value, datetime):
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    if isinstance(value, timedelta):
        delta = value
    else:
        delta = parse_duration(value if value is not None else default)
    try:
        return now - delta
    except OverflowError as e:
        raise DurationParseError(str(value if value is not None else default), "reaches before year 1") from e
