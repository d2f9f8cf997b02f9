"""Time layer: wall-clock date-time to Julian Date and sidereal time.

Approximate by design: no leap seconds, nutation or precession. The Julian
Date follows the browser formula the chart has always used,

    JD = unixSeconds / 86400 - tzOffsetMinutes / 1440 + 2440587.5

where ``tzOffsetMinutes`` is UTC minus local (-60 for UTC+1). The offset is
subtracted once on top of a UTC timestamp, so the local wall clock is read as
if it were UTC. Rendered sky positions for every non-UTC observer depend on
this, so it is kept as is.
"""

from datetime import datetime, tzinfo

J2000 = 2451545.0
UNIX_EPOCH_JD = 2440587.5
GMST_AT_J2000 = 280.46061837  # degrees
GMST_RATE = 360.98564736629  # degrees per day

_ISO_FORMAT = "%Y-%m-%dT%H:%M"


class InvalidTimeInput(ValueError):
    """Date-time input cannot be turned into a timestamp."""


def _aware(dt: datetime) -> datetime:
    # Naive datetimes are read in the host's local zone, with the offset in effect on that date.
    return dt if dt.tzinfo is not None else dt.astimezone()


def tz_offset_minutes(dt: datetime) -> float:
    """Browser-style offset: minutes to add to local time to reach UTC."""
    offset = _aware(dt).utcoffset()
    assert offset is not None
    return -offset.total_seconds() / 60


def julian_date(dt: datetime) -> float:
    """Julian Date of `dt` (see module docstring for the offset convention)."""
    aware = _aware(dt)
    return aware.timestamp() / 86400 - tz_offset_minutes(aware) / 1440 + UNIX_EPOCH_JD


def greenwich_sidereal_time(dt: datetime) -> float:
    """Greenwich Mean Sidereal Time in degrees, reduced into [0, 360)."""
    d = julian_date(dt) - J2000
    gmst = GMST_AT_J2000 + GMST_RATE * d
    # Double modulo keeps the result non-negative for dates before J2000.
    return ((gmst % 360) + 360) % 360


def sidereal_time(dt: datetime, longitude_deg: float) -> float:
    """Local sidereal time in degrees: GMST plus east longitude.

    Left unreduced; the projection rotation consumes it directly.
    """
    return greenwich_sidereal_time(dt) + longitude_deg


def local_sidereal_time(dt: datetime, longitude_deg: float) -> float:
    """Local sidereal time reduced into [0, 360), for display."""
    return sidereal_time(dt, longitude_deg) % 360


def parse_local_datetime(when: str | None, tz: tzinfo | None = None) -> datetime:
    """Parse the date-time picker value into an aware datetime.

    Args:
        when: Naive local ISO-like string ("2024-01-01T00:00", seconds optional).
        tz: Observer's zone. None attaches the host's local zone.

    Raises:
        InvalidTimeInput: Missing, empty, or unparseable input.
    """
    if not when or not isinstance(when, str):
        raise InvalidTimeInput(f"Missing date-time: {when!r}")
    try:
        dt = datetime.fromisoformat(when.strip())
    except ValueError as e:
        raise InvalidTimeInput(f"Unparseable date-time: {when!r}") from e
    if dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=tz) if tz is not None else dt.astimezone()


def now_local_iso(tz: tzinfo | None = None, now: datetime | None = None) -> str:
    """Current local wall-clock time as the picker's "YYYY-MM-DDTHH:MM" string."""
    if now is None:
        now = datetime.now(tz)
    elif tz is not None and now.tzinfo is not None:
        now = now.astimezone(tz)
    return now.strftime(_ISO_FORMAT)
