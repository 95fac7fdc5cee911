import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional, Tuple

from .. import config
from ..config import Settings
from ..exceptions import MetadataReadError, TimestampResolutionError
from ..models import MediaClass, MediaFile, ResolvedTimestamp
from .provider import MetadataProvider

# "YYYY:MM:DD HH:MM:SS[.fraction][Z|+HH:MM|+HHMM]"
# ISO-style dashes and a 'T' separator are tolerated as well.
_EXIF_TIME_RE = re.compile(
    r'^(\d{4})[:-](\d{2})[:-](\d{2})[ T](\d{2}):(\d{2}):(\d{2})'
    r'(?:[.,](\d{1,9}))?'
    r'\s*(Z|[+-]\d{2}:?\d{2})?$'
)


def _offset_to_tz(text: str) -> tzinfo:
    if text == "Z":
        return timezone.utc
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    # timezone() rejects offsets of 24h or more with ValueError
    return timezone(sign * delta)


def parse_exif_time(raw: str, naive_zone: tzinfo) -> Tuple[datetime, int]:
    """
    Parses a metadata time string into (aware instant, sub-second nanoseconds).

    An embedded offset or 'Z' is taken at face value; otherwise the value is
    interpreted in `naive_zone`. Raises ValueError if the string is unusable.
    """
    m = _EXIF_TIME_RE.match(raw.strip())
    if not m:
        raise ValueError(f"could not parse date: {raw}")

    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    fraction, offset = m.group(7), m.group(8)
    nanosecond = int(fraction.ljust(9, "0")) if fraction else 0
    zone = _offset_to_tz(offset) if offset else naive_zone

    instant = datetime(year, month, day, hour, minute, second,
                       nanosecond // 1000, tzinfo=zone)
    return instant, nanosecond


class TimestampResolver:
    """
    Picks the authoritative capture instant for a file.

    Strategy:
      - Probe the class-specific candidate tags in order; first parse wins.
      - Naive image values are in the target timezone, naive video values
        are UTC (QuickTime stores UTC).
      - Otherwise fall back to the filesystem mtime (not authoritative).
    """

    def __init__(self, settings: Settings, provider: Optional[MetadataProvider]):
        self.settings = settings
        self.provider = provider

    def candidate_tags(self, media_class: MediaClass) -> List[str]:
        if media_class is MediaClass.IMAGE:
            return list(config.IMAGE_TIME_TAGS)
        return list(config.VIDEO_TIME_TAGS)

    def naive_zone(self, media_class: MediaClass) -> tzinfo:
        if media_class is MediaClass.IMAGE:
            return self.settings.target_timezone
        return timezone.utc

    def resolve(self, media: MediaFile) -> ResolvedTimestamp:
        if self.provider is not None:
            resolved = self._from_metadata(media)
            if resolved:
                return resolved
            logging.info(f"No valid metadata tag found in {media.path.name}.")

        return self._from_mtime(media)

    def _from_metadata(self, media: MediaFile) -> Optional[ResolvedTimestamp]:
        zone = self.naive_zone(media.media_class)

        for tag in self.candidate_tags(media.media_class):
            try:
                raw = self.provider.read_tag(media.path, tag)
            except MetadataReadError as e:
                logging.debug(f"Reading {tag} failed for {media.path}: {e}")
                continue

            if not raw or raw == config.SENTINEL_DATE:
                continue

            try:
                instant, nanos = parse_exif_time(raw, zone)
            except ValueError as e:
                logging.debug(f"Unparseable {tag}={raw!r} in {media.path}: {e}")
                continue

            return ResolvedTimestamp(
                instant=instant,
                nanosecond=nanos,
                source=f"metadata ({tag})",
                is_authoritative=True,
            )
        return None

    def _from_mtime(self, media: MediaFile) -> ResolvedTimestamp:
        logging.info(f"Falling back to file modification time (mtime) for {media.path.name}.")
        try:
            mtime_ns = media.path.stat().st_mtime_ns
        except OSError as e:
            raise TimestampResolutionError(f"failed to stat file for mtime: {e}") from e

        seconds, nanos = divmod(mtime_ns, 1_000_000_000)
        instant = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=nanos // 1000)
        return ResolvedTimestamp(
            instant=instant,
            nanosecond=nanos,
            source="mtime",
            is_authoritative=False,
        )
