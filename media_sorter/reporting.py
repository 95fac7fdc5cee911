import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .models import FileOutcome

CSV_HEADERS = [
    "Original Path",
    "Final Path",
    "Source",
    "Authoritative",
    "Renamed",
    "Metadata",
    "Synced",
    "Error",
]


@dataclass
class RunSummary:
    """Collects per-file outcomes for the end-of-run summary and CSV report."""
    outcomes: List[FileOutcome] = field(default_factory=list)

    def add(self, outcome: FileOutcome):
        self.outcomes.append(outcome)

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def renamed(self) -> int:
        return sum(1 for o in self.outcomes if o.renamed)

    @property
    def unchanged(self) -> int:
        return sum(1 for o in self.outcomes if o.final_path is not None and not o.renamed)

    @property
    def enriched(self) -> int:
        return sum(1 for o in self.outcomes if o.metadata in ("enriched", "warnings"))

    @property
    def synced(self) -> int:
        return sum(1 for o in self.outcomes if o.synced)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.error or o.metadata == "failed")

    def log_summary(self):
        logging.info(
            f"Processed {self.processed} files: {self.renamed} renamed, "
            f"{self.unchanged} already canonical, {self.enriched} enriched, "
            f"{self.synced} synced, {self.failed} with errors."
        )

    def write_csv(self, output_csv: Path):
        """Writes one row per processed file."""
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADERS)
            for o in self.outcomes:
                writer.writerow([
                    str(o.original_path),
                    str(o.final_path) if o.final_path else "",
                    o.source or "",
                    "yes" if o.is_authoritative else "no",
                    "yes" if o.renamed else "no",
                    o.metadata,
                    "yes" if o.synced else "no",
                    o.error or "",
                ])
        logging.info(f"Report written to {output_csv}")
