"""
Pre-run archive backup of the target directory.
"""
import logging
import tarfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from .exceptions import BackupError


def backup_filename(source_dir: Path, now: Optional[datetime] = None) -> str:
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"backup_{source_dir.name}_{timestamp}.tar.gz"


def create_backup(source_dir: Path, backup_dir: Path, now: Optional[datetime] = None) -> Path:
    """
    Writes `backup_<dirname>_<YYYYmmdd_HHMMSS>.tar.gz` into backup_dir.

    If backup_dir lives inside source_dir it is left out of the archive.

    Args:
        now: Optional datetime override for deterministic tests.

    Returns:
        Path to the created archive.
    """
    source_dir = source_dir.resolve()
    backup_dir = backup_dir.resolve()

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupError(f"could not create backup directory: {e}") from e

    archive_path = backup_dir / backup_filename(source_dir, now)

    skip_arc = None
    try:
        rel = backup_dir.relative_to(source_dir)
        skip_arc = f"{source_dir.name}/{rel.as_posix()}"
    except ValueError:
        pass

    def _filter(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
        if skip_arc and (info.name == skip_arc or info.name.startswith(skip_arc + "/")):
            logging.info(f"Skipping backup directory itself: {info.name}")
            return None
        return info

    logging.info(f"Backing up '{source_dir}' to '{archive_path}'...")
    try:
        with tarfile.open(archive_path, "w:gz") as tar:
            tar.add(source_dir, arcname=source_dir.name, filter=_filter)
    except (OSError, tarfile.TarError) as e:
        raise BackupError(f"could not write backup archive: {e}") from e

    return archive_path
