from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Tuple

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class MediaClass(Enum):
    IMAGE = "image"
    VIDEO = "video"


class Guard(Enum):
    """Condition under which a metadata field may be written."""
    EMPTY = "empty"
    EMPTY_OR_SENTINEL = "empty_or_sentinel"


class WriteStatus(Enum):
    OK = "ok"
    WARNINGS = "warnings"


@dataclass(frozen=True)
class MediaFile:
    """
    A supported file found during the walk.
    """
    path: Path
    extension: str          # as spelled on disk, including the dot
    media_class: MediaClass


@dataclass(frozen=True)
class ResolvedTimestamp:
    """
    The single capture instant chosen for a file.

    `instant` is timezone-aware. `datetime` stops at microseconds, so the full
    sub-second value is carried separately in `nanosecond` (0..999_999_999).
    """
    instant: datetime
    nanosecond: int
    source: str
    is_authoritative: bool

    @property
    def epoch_ns(self) -> int:
        whole = self.instant.replace(microsecond=0)
        seconds = (whole - EPOCH) // timedelta(seconds=1)
        return seconds * 1_000_000_000 + self.nanosecond


@dataclass(frozen=True)
class NormalizedTime:
    """
    Wall-clock view of a ResolvedTimestamp in one zone.
    """
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    millisecond: int
    utc_offset: timedelta
    zone: tzinfo

    def as_datetime(self) -> datetime:
        """Aware datetime at whole-second precision (milliseconds dropped)."""
        return datetime(self.year, self.month, self.day,
                        self.hour, self.minute, self.second,
                        tzinfo=timezone(self.utc_offset))

    def filename_stamp(self) -> str:
        return (f"{self.year:04d}{self.month:02d}{self.day:02d}_"
                f"{self.hour:02d}{self.minute:02d}{self.second:02d}")

    def exif_stamp(self) -> str:
        return (f"{self.year:04d}:{self.month:02d}:{self.day:02d} "
                f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}")

    def offset_string(self) -> str:
        total = int(self.utc_offset.total_seconds()) // 60
        sign = "-" if total < 0 else "+"
        hours, minutes = divmod(abs(total), 60)
        return f"{sign}{hours:02d}:{minutes:02d}"


@dataclass(frozen=True)
class RenamePlan:
    current_basename: str
    ideal_basename: str
    final_basename: str
    collision_suffix: Optional[str] = None   # 3 digits, only when the ideal path was taken

    @property
    def is_noop(self) -> bool:
        return self.final_basename == self.current_basename


@dataclass(frozen=True)
class FieldWrite:
    field: str
    guard: Guard
    value: str


@dataclass(frozen=True)
class MetadataPatch:
    """
    Conditional field writes for one file, applied in a single tool call.

    `group` is the tag group prefix (e.g. "QuickTime") qualifying every field,
    or None when the tool may pick the group itself.
    """
    media_class: MediaClass
    group: Optional[str]
    writes: Tuple[FieldWrite, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.writes)

    def qualified(self, name: str) -> str:
        return f"{self.group}:{name}" if self.group else name

    def field_names(self) -> Tuple[str, ...]:
        return tuple(self.qualified(w.field) for w in self.writes)

    def pruned(self, snapshot: Mapping[str, str]) -> "MetadataPatch":
        """
        Drops writes the snapshot already shows as populated.

        Snapshot values are expected to be normalized by the provider (empty
        string for missing or sentinel). Guards on the remaining writes are
        still evaluated against the live file when written.
        """
        keep = tuple(
            w for w in self.writes
            if not snapshot.get(self.qualified(w.field), "").strip()
        )
        return MetadataPatch(self.media_class, self.group, keep)


@dataclass
class FileOutcome:
    """Result of running the pipeline on one file (used for reporting)."""
    original_path: Path
    final_path: Optional[Path] = None
    source: Optional[str] = None
    is_authoritative: bool = False
    renamed: bool = False
    metadata: str = "skipped"   # skipped / complete / enriched / warnings / failed / dry-run
    synced: bool = False
    error: Optional[str] = None
