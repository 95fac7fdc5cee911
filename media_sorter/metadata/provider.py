import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from .. import config
from ..exceptions import ConfigError, MetadataReadError, MetadataWriteError
from ..models import Guard, MetadataPatch, WriteStatus


class MetadataProvider(Protocol):
    """
    Tag read / conditional tag write capability for a single file.

    Read results are normalized: a missing tag and the sentinel date both
    come back as an empty string.
    """

    def read_tag(self, path: Path, tag: str) -> str: ...

    def read_tags(self, path: Path, tags: Sequence[str]) -> Dict[str, str]: ...

    def write_patch(self, path: Path, patch: MetadataPatch) -> WriteStatus: ...


def normalize_tag_value(value) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if text == config.SENTINEL_DATE:
        return ""
    return text


def guard_expression(name: str, guard: Guard) -> str:
    """Renders a guard as an ExifTool -if expression."""
    if guard is Guard.EMPTY_OR_SENTINEL:
        return f'not ${name} or ${name} eq "{config.SENTINEL_DATE}"'
    return f"not ${name}"


def find_exiftool(override: Optional[str] = None) -> Optional[str]:
    """
    Locates the exiftool binary.

    An explicit override that does not exist is a configuration error;
    an absent binary on PATH just returns None (limited mode).
    """
    if override:
        if Path(override).exists():
            logging.info(f"Using exiftool from user-provided path: {override}")
            return override
        raise ConfigError(f"exiftool not found at the path provided by --exiftool-path: {override}")
    return shutil.which(config.EXIFTOOL_BINARY)


class ExifToolProvider:
    """
    MetadataProvider backed by the 'exiftool' command line utility.
    Every call is one synchronous subprocess.
    """

    def __init__(self, exiftool_path: str = config.EXIFTOOL_BINARY,
                 timeout: int = config.EXIFTOOL_TIMEOUT):
        self.exiftool_path = exiftool_path
        self.timeout = timeout

    # --- Reading ---

    def read_tag(self, path: Path, tag: str) -> str:
        return self.read_tags(path, [tag]).get(tag, "")

    def read_tags(self, path: Path, tags: Sequence[str]) -> Dict[str, str]:
        """
        Reads several tags in one call.

        -j  = JSON output
        -G  = prefix keys with the group name, so "QuickTime:CreateDate" and
              "EXIF:CreateDate" can be told apart
        """
        if not tags:
            return {}
        cmd = [self.exiftool_path, "-j", "-G", "-q", "-m"]
        cmd.extend(f"-{t}" for t in tags)
        cmd.append(str(path))

        proc = self._run(cmd, MetadataReadError)
        if not proc.stdout.strip():
            raise MetadataReadError(
                f"exiftool read error for {path} (exit {proc.returncode}): {proc.stderr.strip()}"
            )
        try:
            records = json.loads(proc.stdout)
        except ValueError as e:
            raise MetadataReadError(f"Unreadable exiftool output for {path}: {e}") from e

        record = records[0] if records else {}
        return {tag: normalize_tag_value(self._lookup(record, tag)) for tag in tags}

    @staticmethod
    def _lookup(record: Dict[str, object], tag: str):
        if tag in record:
            return record[tag]
        # Unqualified (or differently grouped) request: match on the bare name
        bare = tag.split(":")[-1]
        for key, value in record.items():
            if key.split(":")[-1] == bare:
                return value
        return None

    # --- Writing ---

    def build_write_args(self, path: Path, patch: MetadataPatch) -> List[str]:
        """
        One '-if <guard> -Tag=value' command per field, chained with -execute.
        A single -if applies to the whole command, so each field needs its own
        command for the guards to stay independent.
        """
        args: List[str] = []
        for i, write in enumerate(patch.writes):
            if i:
                args.append("-execute")
            name = patch.qualified(write.field)
            args.extend(["-if", guard_expression(name, write.guard), f"-{name}={write.value}"])
        args.extend(["-common_args", "-q", "-m", "-overwrite_original", str(path)])
        return args

    def write_patch(self, path: Path, patch: MetadataPatch) -> WriteStatus:
        if not patch:
            return WriteStatus.OK

        cmd = [self.exiftool_path] + self.build_write_args(path, patch)
        proc = self._run(cmd, MetadataWriteError)

        if proc.returncode == 0:
            return WriteStatus.OK
        if proc.returncode == config.EXIFTOOL_MINOR_WARNING_EXIT:
            return WriteStatus.WARNINGS
        output = (proc.stdout + proc.stderr).strip()
        raise MetadataWriteError(f"exiftool write error (exit {proc.returncode}): {output}")

    def _run(self, cmd: List[str], error_cls) -> subprocess.CompletedProcess:
        logging.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise error_cls(f"Failed to run exiftool: {e}") from e
