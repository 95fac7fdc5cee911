import json
import os
import random
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import tzlocal

from media_sorter.config import settings_from_dict
from media_sorter.exceptions import MetadataReadError, MetadataWriteError
from media_sorter.metadata.provider import ExifToolProvider, normalize_tag_value
from media_sorter.models import Guard, WriteStatus

TZ_PLUS_8 = timezone(timedelta(hours=8))


class StubMetadataProvider:
    """
    In-memory stand-in for exiftool.

    Tags live inside the test file itself as a JSON object, so they follow
    the file through renames like real embedded metadata would.
    """

    def __init__(self, fail_tags=(), write_status=WriteStatus.OK, write_error=None):
        self.fail_tags = set(fail_tags)
        self.write_status = write_status
        self.write_error = write_error
        self.reads = []
        self.writes = []

    @staticmethod
    def load(path: Path) -> dict:
        text = Path(path).read_text(encoding="utf-8")
        return json.loads(text) if text.strip() else {}

    def _raw(self, data: dict, tag: str):
        if tag == "Composite:SubSecDateTimeOriginal" and tag not in data:
            # Mimic exiftool's composite tag
            dto = data.get("DateTimeOriginal")
            subsec = data.get("SubSecTimeOriginal")
            offset = data.get("OffsetTimeOriginal")
            if not dto or not (subsec or offset):
                return None
            return dto + (f".{subsec}" if subsec else "") + (offset or "")
        return ExifToolProvider._lookup(data, tag)

    def read_tag(self, path, tag):
        return self.read_tags(path, [tag])[tag]

    def read_tags(self, path, tags):
        self.reads.append((Path(path).name, tuple(tags)))
        if self.fail_tags.intersection(tags):
            raise MetadataReadError(f"scripted failure for {tags}")
        data = self.load(path)
        return {t: normalize_tag_value(self._raw(data, t)) for t in tags}

    def write_patch(self, path, patch):
        self.writes.append((Path(path).name, patch))
        if self.write_error:
            raise MetadataWriteError(self.write_error)

        data = self.load(path)
        for w in patch.writes:
            name = patch.qualified(w.field)
            current = data.get(name)
            if w.guard is Guard.EMPTY_OR_SENTINEL:
                allowed = not normalize_tag_value(current)
            else:
                allowed = not current
            if allowed:
                data[name] = w.value
        Path(path).write_text(json.dumps(data), encoding="utf-8")
        return self.write_status


def write_media(path: Path, tags: dict = None, mtime: datetime = None, nanos: int = 0) -> Path:
    """Creates a fake media file holding `tags`, optionally with a given mtime."""
    path.write_text(json.dumps(tags or {}), encoding="utf-8")
    if mtime is not None:
        ns = int(mtime.timestamp()) * 1_000_000_000 + nanos
        os.utime(path, ns=(ns, ns))
    return path


@pytest.fixture
def settings():
    return settings_from_dict({"target_timezone": "+08:00"})


@pytest.fixture
def stub():
    return StubMetadataProvider()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def berlin_local(monkeypatch):
    """Makes Europe/Berlin the machine's local zone for the duration of a test."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    tzlocal.reload_localzone()
    yield
    monkeypatch.undo()
    time.tzset()
    tzlocal.reload_localzone()
