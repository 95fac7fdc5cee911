"""
Timezone parsing and wall-clock normalization.
"""
import re
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzlocal import get_localzone_name

from .exceptions import ConfigError
from .models import NormalizedTime, ResolvedTimestamp

_OFFSET_RE = re.compile(r'^([+-])(\d{2}):?(\d{2})$')

NS_PER_MS = 1_000_000
MAX_MILLISECOND = 999


def local_timezone() -> tzinfo:
    """
    The machine's tz database zone, so each instant gets its own offset
    (DST included) rather than today's.
    """
    try:
        return ZoneInfo(get_localzone_name())
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise ConfigError(f"could not determine the local timezone: {e}") from e


def parse_timezone(text: str) -> tzinfo:
    """
    Accepts "UTC", "Local", an IANA zone name ("Asia/Shanghai") or a fixed
    offset ("+08:00", "-0500").
    """
    value = (text or "").strip()
    if not value:
        raise ConfigError("empty timezone")
    if value.upper() in ("UTC", "Z"):
        return timezone.utc
    if value.lower() == "local":
        return local_timezone()

    m = _OFFSET_RE.match(value)
    if m:
        sign, hours, minutes = m.group(1), int(m.group(2)), int(m.group(3))
        if hours > 23 or minutes > 59:
            raise ConfigError(f"invalid timezone offset: {text}")
        delta = timedelta(hours=hours, minutes=minutes)
        return timezone(-delta if sign == "-" else delta)

    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"invalid timezone format: {text}") from e


def round_millisecond(nanosecond: int) -> int:
    """
    Round-half-up to milliseconds. A result of 1000 is clamped to 999 and
    never carried into the seconds field.
    """
    ms = (nanosecond + NS_PER_MS // 2) // NS_PER_MS
    return min(ms, MAX_MILLISECOND)


def normalize(resolved: ResolvedTimestamp, zone: tzinfo) -> NormalizedTime:
    """Converts the resolved instant to wall-clock fields in `zone`."""
    local = resolved.instant.astimezone(zone)
    return NormalizedTime(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
        millisecond=round_millisecond(resolved.nanosecond),
        utc_offset=local.utcoffset() or timedelta(0),
        zone=zone,
    )


def exif_stamp(dt: datetime) -> str:
    """EXIF/QuickTime wall-clock layout, 'YYYY:MM:DD HH:MM:SS'."""
    return (f"{dt.year:04d}:{dt.month:02d}:{dt.day:02d} "
            f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}")
