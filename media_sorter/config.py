"""
Configuration constants and settings loading for the media sorter.
"""
import json
import logging
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .exceptions import ConfigError
from .models import MediaClass
from .timing import parse_timezone

# --- Defaults (overridable through config.json) ---
DEFAULT_CONFIG_FILENAME = "config.json"
DEFAULT_IMAGE_PREFIX = "IMG"
DEFAULT_VIDEO_PREFIX = "VID"
DEFAULT_TARGET_TIMEZONE = "+08:00"
DEFAULT_IMAGE_EXTS = ("jpg", "jpeg", "png", "heic", "webp", "gif")
DEFAULT_VIDEO_EXTS = ("mp4", "mov", "avi", "mkv")
DEFAULT_BACKUP_DIR = "./media_backups"

# --- Metadata Tags ---
# "Field present but unset" marker used by EXIF and QuickTime writers
SENTINEL_DATE = "0000:00:00 00:00:00"

# Probe order matters: the first tag that parses wins.
IMAGE_TIME_TAGS = [
    "Composite:SubSecDateTimeOriginal",
    "DateTimeOriginal",
]
VIDEO_TIME_TAGS = [
    "MediaCreateDate",
    "TrackCreateDate",
    "CreateDate",
]

# Enrichment targets
IMAGE_DATE_FIELDS = ["DateTimeOriginal", "CreateDate", "ModifyDate"]
IMAGE_OFFSET_FIELDS = ["OffsetTimeOriginal", "OffsetTimeDigitized", "OffsetTime"]
IMAGE_SUBSEC_FIELDS = ["SubSecTimeOriginal", "SubSecTimeDigitized", "SubSecTime"]
VIDEO_TAG_GROUP = "QuickTime"
VIDEO_DATE_FIELDS = [
    "MediaCreateDate", "TrackCreateDate", "CreateDate",
    "MediaModifyDate", "TrackModifyDate", "ModifyDate",
]

# --- External Tool ---
EXIFTOOL_BINARY = "exiftool"
EXIFTOOL_TIMEOUT = 60  # seconds per invocation
# ExifTool exits with 2 when it only has minor warnings or a -if condition failed
EXIFTOOL_MINOR_WARNING_EXIT = 2


def _normalize_exts(values) -> Tuple[str, ...]:
    return tuple(str(v).lower().lstrip(".") for v in values if str(v).strip())


@dataclass(frozen=True)
class Settings:
    """
    Immutable run configuration, threaded explicitly through every component.
    """
    image_prefix: str
    video_prefix: str
    target_timezone: tzinfo
    timezone_name: str
    image_extensions: Tuple[str, ...]
    video_extensions: Tuple[str, ...]

    def classify(self, extension: str) -> Optional[MediaClass]:
        """Maps an extension (with or without dot, any case) to a media class."""
        ext = extension.lower().lstrip(".")
        if ext in self.image_extensions:
            return MediaClass.IMAGE
        if ext in self.video_extensions:
            return MediaClass.VIDEO
        return None

    def prefix_for(self, media_class: MediaClass) -> str:
        if media_class is MediaClass.IMAGE:
            return self.image_prefix
        return self.video_prefix


def settings_from_dict(raw: Dict[str, Any]) -> Settings:
    """Builds Settings from a raw config mapping, defaulting missing keys."""
    tz_name = str(raw.get("target_timezone") or DEFAULT_TARGET_TIMEZONE)
    try:
        target_tz = parse_timezone(tz_name)
    except ConfigError as e:
        raise ConfigError(f"Invalid 'target_timezone' in config: {e}") from e

    image_exts = raw.get("supported_image_extensions")
    video_exts = raw.get("supported_video_extensions")

    return Settings(
        image_prefix=str(raw.get("image_prefix") or DEFAULT_IMAGE_PREFIX),
        video_prefix=str(raw.get("video_prefix") or DEFAULT_VIDEO_PREFIX),
        target_timezone=target_tz,
        timezone_name=tz_name,
        image_extensions=_normalize_exts(image_exts if image_exts is not None else DEFAULT_IMAGE_EXTS),
        video_extensions=_normalize_exts(video_exts if video_exts is not None else DEFAULT_VIDEO_EXTS),
    )


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Loads settings from a JSON config file.

    A missing file or one that cannot be parsed falls back to the defaults.
    An invalid timezone is not recoverable and raises ConfigError.
    """
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILENAME)
    abs_path = config_path.resolve()

    if not config_path.exists():
        logging.info(f"{abs_path} not found, using default settings.")
        return settings_from_dict({})

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError("top-level value must be an object")
    except (OSError, ValueError) as e:
        logging.warning(f"Could not parse {abs_path} ({e}), using default settings.")
        return settings_from_dict({})

    logging.info(f"Loaded settings from {abs_path}.")
    return settings_from_dict(raw)
