import logging
import os
import random
from pathlib import Path
from typing import Callable, Optional, Set

from tqdm import tqdm

from .config import Settings
from .exceptions import FileOperationError, MetadataReadError, MetadataWriteError, TimestampResolutionError
from .metadata.enrichment import MetadataEnrichmentPlanner
from .metadata.provider import MetadataProvider
from .metadata.resolver import TimestampResolver
from .models import FileOutcome, MediaClass, MediaFile, MetadataPatch, WriteStatus
from .organization.mutator import FileMutator
from .organization.naming import FilenamePlanner
from .reporting import RunSummary
from .scanning.filesystem import MediaScanner
from .timing import normalize


class MediaSorterApp:
    def __init__(self,
                 settings: Settings,
                 provider: Optional[MetadataProvider] = None,
                 rng: Optional[random.Random] = None,
                 dry_run: bool = False,
                 exists: Callable[[Path], bool] = os.path.exists):
        self.settings = settings
        self.provider = provider
        self.resolver = TimestampResolver(settings, provider)
        self.namer = FilenamePlanner(rng)
        self.enricher = MetadataEnrichmentPlanner()
        self.mutator = FileMutator(provider, dry_run=dry_run)
        self.scanner = MediaScanner(settings)
        self.exists = exists

    def run(self,
            root: Path,
            max_depth: int = -1,
            skip_dirs: Optional[Set[Path]] = None) -> RunSummary:
        """
        Walks root and runs the pipeline on every supported file, one file at a
        time. A ScanError from the walk propagates and ends the run.
        """
        summary = RunSummary()
        media_iter = self.scanner.iter_media(root, max_depth=max_depth, skip_dirs=skip_dirs)
        for media in tqdm(media_iter, desc="Processing", unit="file"):
            summary.add(self.process_file(media))
        return summary

    def process_file(self, media: MediaFile) -> FileOutcome:
        """
        Resolve -> normalize -> plan name -> rename -> enrich -> sync.
        """
        outcome = FileOutcome(original_path=media.path)
        logging.info(f"Processing {media.path.name}")

        # --- Step 1: Resolve & normalize ---
        try:
            resolved = self.resolver.resolve(media)
        except TimestampResolutionError as e:
            logging.error(f"Could not get time for {media.path}: {e}")
            outcome.error = str(e)
            return outcome

        outcome.source = resolved.source
        outcome.is_authoritative = resolved.is_authoritative
        normalized = normalize(resolved, self.settings.target_timezone)

        # --- Step 2: Rename ---
        name_authoritative = self.namer.promote(
            resolved, normalized, media.media_class, tool_available=self.provider is not None
        )
        plan = self.namer.plan(
            normalized,
            prefix=self.settings.prefix_for(media.media_class),
            extension=media.extension,
            is_authoritative=name_authoritative,
            current_path=media.path,
            exists=self.exists,
        )

        if plan.is_noop:
            current = media.path
            logging.info(f"Filename is already perfect. (Source: {resolved.source})")
        else:
            try:
                current = self.mutator.rename(media.path, plan)
            except FileOperationError as e:
                logging.error(f"Rename of {media.path} failed, skipping remaining steps: {e}")
                outcome.error = str(e)
                return outcome
            outcome.renamed = True
            logging.info(f"Renamed to '{plan.final_basename}' (Source: {resolved.source})")
        outcome.final_path = current

        # --- Step 3: Enrich metadata ---
        outcome.metadata = self._enrich(current, normalized, media.media_class)

        # --- Step 4: Sync filesystem timestamp ---
        try:
            self.mutator.sync_timestamp(current, resolved)
            outcome.synced = True
            logging.debug(f"System file timestamp synced for {current.name}.")
        except FileOperationError as e:
            logging.error(f"Timestamp sync failed for {current}: {e}")
            outcome.error = str(e)

        return outcome

    def _enrich(self, path: Path, normalized, media_class: MediaClass) -> str:
        if self.provider is None:
            logging.info(f"Skipping metadata enrichment for {path.name} ('exiftool' not found).")
            return "skipped"

        patch = self.enricher.plan(normalized, media_class)
        patch = self._prune(path, patch)
        if not patch:
            logging.info(f"Metadata already complete for {path.name}.")
            return "complete"

        try:
            status = self.mutator.write_patch(path, patch)
        except MetadataWriteError as e:
            logging.error(f"Failed to enrich metadata for {path}: {e}")
            return "failed"

        if status is None:
            return "dry-run"
        if status is WriteStatus.WARNINGS:
            logging.info(f"Metadata enriched for {path.name} (with minor warnings from exiftool).")
            return "warnings"
        logging.info(f"Metadata checked and enriched for {path.name}.")
        return "enriched"

    def _prune(self, path: Path, patch: MetadataPatch) -> MetadataPatch:
        """
        Drops fields the file already has. If the snapshot cannot be read the
        full patch is kept; its guards still protect existing values.
        """
        try:
            snapshot = self.provider.read_tags(path, patch.field_names())
        except MetadataReadError as e:
            logging.debug(f"Could not snapshot metadata of {path}: {e}")
            return patch
        return patch.pruned(snapshot)
