"""
Interactive console prompts and the pre-run execution plan.
"""
from pathlib import Path
from typing import Callable, Optional

from .config import Settings

InputFn = Callable[[str], str]

RULE = "=" * 70
THIN_RULE = "-" * 70


def show_execution_plan(target_dir: Path,
                        settings: Settings,
                        backup_enabled: bool,
                        backup_dir: Path,
                        exiftool_found: bool,
                        max_depth: int,
                        dry_run: bool = False):
    depth = "unlimited" if max_depth == -1 else str(max_depth)
    print(RULE)
    print("EXECUTION PLAN".center(70))
    print(RULE)
    print(f"  TARGET DIRECTORY: {target_dir}")
    print(f"  DEPTH:            {depth}")
    if backup_enabled:
        print(f"  BACKUP:           Enabled. A backup will be created in '{backup_dir}'.")
    else:
        print("  BACKUP:           Disabled. Files will be modified in-place without a backup.")
    if not exiftool_found:
        print("  WARNING:          Operating in LIMITED MODE ('exiftool' not found).")
    if dry_run:
        print("  DRY RUN:          No file will be renamed or modified.")
    print(f"  Image Types:      {' '.join(settings.image_extensions)}")
    print(f"  Video Types:      {' '.join(settings.video_extensions)}")
    print(f"  Timezone:         {settings.timezone_name}")
    print(THIN_RULE)
    print("  1. [Read Time]:    Most authoritative timestamp from metadata,")
    print("                     falling back to the file's modification time.")
    print(f"  2. [Normalize TZ]: All timestamps normalized to {settings.timezone_name}.")
    print("  3. [Rename File]:  "
          f"{settings.image_prefix}_YYYYMMDD_HHMMSS[_ms].ext / {settings.video_prefix}_YYYYMMDD_HHMMSS.ext")
    print("  4. [Sync Info]:    File timestamp synced; EMPTY metadata timestamps filled,")
    print("                     EXISTING metadata timestamps never overwritten.")
    print(RULE)


def show_exiftool_warning():
    print(RULE)
    print("  WARNING: 'exiftool' was not found on this system.")
    print("  Timestamps will come from file modification times only and")
    print("  no metadata will be read or enriched.")
    print(RULE)


def request_confirmation(input_fn: Optional[InputFn] = None) -> bool:
    """Proceeds only on an explicit 'yes'."""
    answer = (input_fn or input)("Type 'yes' to proceed: ")
    return answer.strip().lower() == "yes"


def request_critical_confirmation(phrase: str, input_fn: Optional[InputFn] = None) -> bool:
    """Requires the exact phrase to be typed back."""
    answer = (input_fn or input)(f"To continue, type exactly '{phrase}': ")
    return answer.strip() == phrase


def request_continue_on_failure(message: str, input_fn: Optional[InputFn] = None) -> bool:
    print(message)
    answer = (input_fn or input)("Continue without a backup? [y/N]: ")
    return answer.strip().lower() in ("y", "yes")
