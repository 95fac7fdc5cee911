import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import config, prompts
from .backup import create_backup
from .config import load_settings
from .core import MediaSorterApp
from .exceptions import BackupError, ConfigError, ScanError
from .metadata.provider import ExifToolProvider, find_exiftool


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a log file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser(
        prog="media-sorter",
        description="Renames photos and videos to their capture time, syncs file "
                    "timestamps and fills missing metadata timestamps.",
    )

    p.add_argument("target", nargs="?", type=Path, help="Directory to process")
    p.add_argument("--dir", type=Path, default=None, help="Directory to process (same as the positional argument)")

    p.add_argument("-y", "--yes", action="store_true", help="Bypass the confirmation prompt")
    p.add_argument("--no-backup", action="store_true", help="Disable the default backup")
    p.add_argument("--backup-dir", type=Path, default=Path(config.DEFAULT_BACKUP_DIR), help="Directory to store backups")
    p.add_argument("--exiftool-path", default=None, help="Full path to the exiftool executable")
    p.add_argument("--depth", type=int, default=-1,
                   help="Maximum directory depth. -1 for infinite, 0 for the target directory only")
    p.add_argument("--config", type=Path, default=Path(config.DEFAULT_CONFIG_FILENAME), help="Path to config.json")
    p.add_argument("--dry-run", action="store_true", help="Show what would change without modifying anything")
    p.add_argument("--report-csv", type=Path, default=None, help="Write a per-file CSV report")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    # 1. Config
    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logging.error(f"FATAL: {e}")
        sys.exit(1)
    logging.info(f"Authoritative timezone set to {settings.timezone_name}.")

    # 2. exiftool
    try:
        exiftool_path = find_exiftool(args.exiftool_path)
    except ConfigError as e:
        logging.error(f"FATAL: {e}")
        sys.exit(1)

    if not exiftool_path:
        # --yes does not bypass this one
        prompts.show_exiftool_warning()
        if not prompts.request_critical_confirmation("Please continue anyway!"):
            logging.warning("Operation cancelled by user.")
            sys.exit(1)

    # 3. Target directory
    target = args.dir or args.target
    if target is None:
        logging.error("Target directory not specified.")
        sys.exit(1)
    target = target.resolve()
    if not target.is_dir():
        logging.error(f"Invalid target directory: {target}")
        sys.exit(1)

    backup_dir = args.backup_dir.resolve()
    backup_enabled = not args.no_backup and not args.dry_run

    # 4. Plan & confirmation
    prompts.show_execution_plan(target, settings, backup_enabled, backup_dir,
                                exiftool_path is not None, args.depth, args.dry_run)
    if not args.yes:
        if not prompts.request_confirmation():
            logging.info("Operation cancelled by user.")
            sys.exit(0)
    else:
        logging.info("Automation flag (--yes) detected. Proceeding automatically...")

    # 5. Backup
    if backup_enabled:
        try:
            archive = create_backup(target, backup_dir)
            logging.info(f"Backup completed successfully: {archive}")
        except BackupError as e:
            if args.yes:
                logging.error(f"Backup failed in automated mode (--yes). Aborting operation. ({e})")
                sys.exit(1)
            if not prompts.request_continue_on_failure(f"ERROR: Backup failed! ({e})"):
                logging.warning("Operation cancelled.")
                sys.exit(1)

    # 6. Execution
    provider = ExifToolProvider(exiftool_path) if exiftool_path else None
    app = MediaSorterApp(settings, provider, dry_run=args.dry_run)

    try:
        summary = app.run(target, max_depth=args.depth, skip_dirs={backup_dir})
    except ScanError as e:
        logging.error(f"Error walking directory: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)

    summary.log_summary()
    if args.report_csv:
        summary.write_csv(args.report_csv)
    logging.info("All files have been processed!")


if __name__ == "__main__":
    main()
