import logging
import os
from pathlib import Path
from typing import Optional

from ..exceptions import FileOperationError
from ..metadata.provider import MetadataProvider
from ..models import MetadataPatch, RenamePlan, ResolvedTimestamp, WriteStatus


class FileMutator:
    """
    Applies the three per-file mutations: rename, metadata patch, mtime sync.

    Each step raises on failure; the caller decides whether later steps run.
    """

    def __init__(self, provider: Optional[MetadataProvider], dry_run: bool = False):
        self.provider = provider
        self.dry_run = dry_run

    def rename(self, path: Path, plan: RenamePlan) -> Path:
        """Renames `path` per the plan and returns the file's current path."""
        if plan.is_noop:
            return path

        target = path.with_name(plan.final_basename)
        if self.dry_run:
            logging.info(f"[DRY RUN] Rename {path.name} -> {target.name}")
            return path

        # os.rename silently replaces on POSIX
        if target.exists():
            raise FileOperationError(f"refusing to overwrite existing file '{target.name}'")
        try:
            os.rename(path, target)
        except OSError as e:
            raise FileOperationError(f"failed to rename to '{target.name}': {e}") from e
        return target

    def write_patch(self, path: Path, patch: MetadataPatch) -> Optional[WriteStatus]:
        """Returns None when nothing was written (empty patch, no tool, dry run)."""
        if not patch or self.provider is None:
            return None

        if self.dry_run:
            for name in patch.field_names():
                logging.info(f"[DRY RUN] Fill {name} in {path.name}")
            return None

        return self.provider.write_patch(path, patch)

    def sync_timestamp(self, path: Path, resolved: ResolvedTimestamp) -> None:
        """Sets atime and mtime to the resolved instant (nanosecond precision)."""
        ns = resolved.epoch_ns
        if self.dry_run:
            logging.info(f"[DRY RUN] Set timestamps of {path.name} to {resolved.instant.isoformat()}")
            return
        try:
            os.utime(path, ns=(ns, ns))
        except OSError as e:
            raise FileOperationError(f"failed to sync file timestamp: {e}") from e
