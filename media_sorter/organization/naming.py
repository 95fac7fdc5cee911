import os
import random
import re
from pathlib import Path
from typing import Callable, Optional

from ..models import MediaClass, NormalizedTime, RenamePlan, ResolvedTimestamp

# Trailing "_[123]" left by an earlier collision
_SUFFIX_RE = re.compile(r'^(?P<stem>.+)_\[(?P<suffix>\d{3})\]$')


class FilenamePlanner:
    """
    Derives the canonical name `PREFIX_YYYYMMDD_HHMMSS[_MMM][_[RRR]].ext`.

    The random source is injected so collision suffixes are reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def ideal_basename(self, t: NormalizedTime, prefix: str, extension: str,
                       is_authoritative: bool) -> str:
        """Pure in its inputs; milliseconds only for authoritative, nonzero values."""
        stamp = t.filename_stamp()
        if is_authoritative and t.millisecond > 0:
            return f"{prefix}_{stamp}_{t.millisecond:03d}{extension}"
        return f"{prefix}_{stamp}{extension}"

    def promote(self, resolved: ResolvedTimestamp, t: NormalizedTime,
                media_class: MediaClass, tool_available: bool) -> bool:
        """
        Returns the authoritativeness used for naming.

        An mtime-derived timestamp with sub-second precision is promoted when
        the enrichment step can persist those sub-seconds (images with a
        metadata tool), so the next run resolves the same name from metadata.
        The timestamp's source label is untouched.

        Videos are never promoted, even with nonzero milliseconds and the
        tool present: QuickTime date fields hold whole seconds only, so a
        promoted `_MMM` name could not be reproduced from metadata on the
        next run and the file would be renamed again.
        """
        if resolved.is_authoritative:
            return True
        return tool_available and media_class is MediaClass.IMAGE and t.millisecond > 0

    def plan(self,
             t: NormalizedTime,
             prefix: str,
             extension: str,
             is_authoritative: bool,
             current_path: Path,
             exists: Callable[[Path], bool] = os.path.exists) -> RenamePlan:
        current = current_path.name
        ideal = self.ideal_basename(t, prefix, extension, is_authoritative)

        if ideal == current:
            return RenamePlan(current, ideal, current)

        ideal_path = current_path.with_name(ideal)
        if not exists(ideal_path):
            return RenamePlan(current, ideal, ideal)

        # Ideal name is taken by another file.
        if self._is_suffixed_variant(current, ideal, extension):
            return RenamePlan(current, ideal, current)

        # Single draw, no retry; the mutator refuses to overwrite if this is taken too.
        suffix = f"{self.rng.randrange(1000):03d}"
        stem = ideal[:len(ideal) - len(extension)] if extension else ideal
        return RenamePlan(current, ideal, f"{stem}_[{suffix}]{extension}", suffix)

    @staticmethod
    def _is_suffixed_variant(current: str, ideal: str, extension: str) -> bool:
        """True if `current` is `ideal` plus an earlier collision suffix."""
        if extension and not current.endswith(extension):
            return False
        current_stem = current[:len(current) - len(extension)] if extension else current
        ideal_stem = ideal[:len(ideal) - len(extension)] if extension else ideal
        m = _SUFFIX_RE.match(current_stem)
        return bool(m) and m.group("stem") == ideal_stem
