import tarfile
from datetime import datetime
from pathlib import Path

import pytest

from media_sorter import backup as backup_module
from media_sorter.backup import backup_filename, create_backup
from media_sorter.exceptions import BackupError


def test_backup_filename():
    name = backup_filename(Path("/data/Photos"), now=datetime(2024, 2, 3, 4, 5, 6))
    assert name == "backup_Photos_20240203_040506.tar.gz"


def test_create_backup_archives_tree(tmp_path):
    src = tmp_path / "album"
    (src / "sub").mkdir(parents=True)
    (src / "a.jpg").write_text("a")
    (src / "sub" / "b.mp4").write_text("b")

    archive = create_backup(src, tmp_path / "backups", now=datetime(2024, 1, 1))

    assert archive.name == "backup_album_20240101_000000.tar.gz"
    with tarfile.open(archive) as tar:
        names = set(tar.getnames())
    assert {"album/a.jpg", "album/sub/b.mp4"} <= names


def test_backup_dir_inside_source_is_skipped(tmp_path):
    src = tmp_path / "album"
    src.mkdir()
    (src / "a.jpg").write_text("a")

    archive = create_backup(src, src / "media_backups")

    with tarfile.open(archive) as tar:
        names = tar.getnames()
    assert "album/a.jpg" in names
    assert not any("media_backups" in n for n in names)


def test_backup_failure_raises(tmp_path, monkeypatch):
    src = tmp_path / "album"
    src.mkdir()

    def broken_open(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(backup_module.tarfile, "open", broken_open)
    with pytest.raises(BackupError, match="disk full"):
        create_backup(src, tmp_path / "backups")
