import json
import subprocess
from pathlib import Path

import pytest

from media_sorter.exceptions import ConfigError, MetadataReadError, MetadataWriteError
from media_sorter.metadata import provider as provider_module
from media_sorter.metadata.provider import ExifToolProvider, find_exiftool, guard_expression
from media_sorter.models import FieldWrite, Guard, MediaClass, MetadataPatch, WriteStatus


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def _video_patch():
    return MetadataPatch(MediaClass.VIDEO, "QuickTime", (
        FieldWrite("MediaCreateDate", Guard.EMPTY_OR_SENTINEL, "2023:08:15 06:30:05"),
        FieldWrite("TrackCreateDate", Guard.EMPTY_OR_SENTINEL, "2023:08:15 06:30:05"),
    ))


def test_guard_expressions():
    assert guard_expression("SubSecTime", Guard.EMPTY) == "not $SubSecTime"
    assert guard_expression("QuickTime:CreateDate", Guard.EMPTY_OR_SENTINEL) == (
        'not $QuickTime:CreateDate or $QuickTime:CreateDate eq "0000:00:00 00:00:00"'
    )


def test_write_args_keep_guards_independent():
    args = ExifToolProvider().build_write_args(Path("/m/clip.mov"), _video_patch())

    assert args[:3] == [
        "-if",
        'not $QuickTime:MediaCreateDate or $QuickTime:MediaCreateDate eq "0000:00:00 00:00:00"',
        "-QuickTime:MediaCreateDate=2023:08:15 06:30:05",
    ]
    assert args[3] == "-execute"
    assert args[4:7][2] == "-QuickTime:TrackCreateDate=2023:08:15 06:30:05"
    assert args[-5:] == ["-common_args", "-q", "-m", "-overwrite_original", "/m/clip.mov"]


@pytest.mark.parametrize("code,status", [(0, WriteStatus.OK), (2, WriteStatus.WARNINGS)])
def test_write_patch_exit_codes(monkeypatch, code, status):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return _completed(returncode=code)

    monkeypatch.setattr(provider_module.subprocess, "run", fake_run)
    assert ExifToolProvider("et").write_patch(Path("a.mov"), _video_patch()) is status
    assert len(calls) == 1
    assert calls[0][0] == "et"


def test_write_patch_hard_failure(monkeypatch):
    monkeypatch.setattr(provider_module.subprocess, "run",
                        lambda cmd, **kw: _completed(returncode=1, stderr="Error: file not writable"))
    with pytest.raises(MetadataWriteError, match="not writable"):
        ExifToolProvider().write_patch(Path("a.mov"), _video_patch())


def test_empty_patch_issues_no_call(monkeypatch):
    def fail_run(*a, **kw):
        raise AssertionError("exiftool must not be called")

    monkeypatch.setattr(provider_module.subprocess, "run", fail_run)
    empty = MetadataPatch(MediaClass.IMAGE, None, ())
    assert ExifToolProvider().write_patch(Path("a.jpg"), empty) is WriteStatus.OK


def test_read_tags_maps_grouped_keys(monkeypatch):
    payload = [{
        "SourceFile": "a.jpg",
        "Composite:SubSecDateTimeOriginal": "2023:08:15 14:30:05.750+08:00",
        "EXIF:DateTimeOriginal": "2023:08:15 14:30:05",
        "EXIF:ModifyDate": "0000:00:00 00:00:00",
    }]
    monkeypatch.setattr(provider_module.subprocess, "run",
                        lambda cmd, **kw: _completed(stdout=json.dumps(payload)))

    values = ExifToolProvider().read_tags(
        Path("a.jpg"),
        ["Composite:SubSecDateTimeOriginal", "DateTimeOriginal", "ModifyDate", "OffsetTime"],
    )
    assert values == {
        "Composite:SubSecDateTimeOriginal": "2023:08:15 14:30:05.750+08:00",
        "DateTimeOriginal": "2023:08:15 14:30:05",
        "ModifyDate": "",
        "OffsetTime": "",
    }


def test_read_tag_missing_binary(monkeypatch):
    def raise_missing(cmd, **kw):
        raise FileNotFoundError("exiftool")

    monkeypatch.setattr(provider_module.subprocess, "run", raise_missing)
    with pytest.raises(MetadataReadError):
        ExifToolProvider().read_tag(Path("a.jpg"), "DateTimeOriginal")


def test_read_tag_garbage_output(monkeypatch):
    monkeypatch.setattr(provider_module.subprocess, "run",
                        lambda cmd, **kw: _completed(stdout="not json"))
    with pytest.raises(MetadataReadError):
        ExifToolProvider().read_tag(Path("a.jpg"), "DateTimeOriginal")


def test_find_exiftool_override(tmp_path):
    exe = tmp_path / "exiftool"
    exe.write_text("#!/bin/sh\n")
    assert find_exiftool(str(exe)) == str(exe)
    with pytest.raises(ConfigError):
        find_exiftool(str(tmp_path / "missing"))


def test_find_exiftool_on_path(monkeypatch):
    monkeypatch.setattr(provider_module.shutil, "which", lambda name: None)
    assert find_exiftool() is None
