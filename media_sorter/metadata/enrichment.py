from datetime import timezone
from typing import List

from .. import config
from ..models import FieldWrite, Guard, MediaClass, MetadataPatch, NormalizedTime
from ..timing import exif_stamp


class MetadataEnrichmentPlanner:
    """
    Builds the minimal set of guarded writes that fills empty timestamp
    fields without ever overwriting existing values.

    Images get target-zone wall clock plus offset (and sub-second) fields.
    Videos get UTC wall clock in the QuickTime group and nothing else.
    """

    def plan(self, normalized: NormalizedTime, media_class: MediaClass) -> MetadataPatch:
        if media_class is MediaClass.IMAGE:
            return self._plan_image(normalized)
        return self._plan_video(normalized)

    def _plan_image(self, t: NormalizedTime) -> MetadataPatch:
        wall_clock = t.exif_stamp()
        offset = t.offset_string()
        writes: List[FieldWrite] = []

        for name in config.IMAGE_DATE_FIELDS:
            writes.append(FieldWrite(name, Guard.EMPTY_OR_SENTINEL, wall_clock))
        # Offsets are guarded on their own, independent of the date fields
        for name in config.IMAGE_OFFSET_FIELDS:
            writes.append(FieldWrite(name, Guard.EMPTY, offset))
        if t.millisecond > 0:
            subsec = f"{t.millisecond:03d}"
            for name in config.IMAGE_SUBSEC_FIELDS:
                writes.append(FieldWrite(name, Guard.EMPTY, subsec))

        return MetadataPatch(MediaClass.IMAGE, None, tuple(writes))

    def _plan_video(self, t: NormalizedTime) -> MetadataPatch:
        utc_stamp = exif_stamp(t.as_datetime().astimezone(timezone.utc))
        writes = tuple(
            FieldWrite(name, Guard.EMPTY_OR_SENTINEL, utc_stamp)
            for name in config.VIDEO_DATE_FIELDS
        )
        return MetadataPatch(MediaClass.VIDEO, config.VIDEO_TAG_GROUP, writes)
