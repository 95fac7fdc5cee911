import logging
import os
from pathlib import Path
from typing import Iterator, Optional, Set

from ..config import Settings
from ..exceptions import ScanError
from ..models import MediaFile


class MediaScanner:
    def __init__(self, settings: Settings):
        self.settings = settings

    def classify(self, path: Path) -> Optional[MediaFile]:
        """Returns a MediaFile for supported extensions, None otherwise."""
        # macOS AppleDouble resource forks share the real file's extension
        if path.name.startswith("._"):
            return None
        media_class = self.settings.classify(path.suffix)
        if media_class is None:
            return None
        return MediaFile(path=path, extension=path.suffix, media_class=media_class)

    def iter_media(self,
                   root: Path,
                   max_depth: int = -1,
                   skip_dirs: Optional[Set[Path]] = None) -> Iterator[MediaFile]:
        """
        Lazily yields supported media files under root.

        Args:
            max_depth: -1 for unlimited, 0 for the root directory only.
            skip_dirs: Directories (and their subtrees) to ignore.
        """
        for path in self._iter_files(root, max_depth, skip_dirs or set()):
            media = self.classify(path)
            if media:
                yield media

    def _iter_files(self, root: Path, max_depth: int, skip_dirs: Set[Path]) -> Iterator[Path]:
        """
        Depth-first walker using os.scandir.

        Each directory is listed in full before its files are yielded, so a
        file renamed by the consumer is never seen twice.
        """
        stack = [(root, 0)]
        while stack:
            current, depth = stack.pop()
            if skip_dirs and any(sd == current or sd in current.parents for sd in skip_dirs):
                logging.debug(f"Skipping directory {current}")
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                raise ScanError(f"Error accessing path {current}: {e}") from e

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))

            if max_depth == -1 or depth < max_depth:
                # Reversed so A is processed before Z
                for d in reversed(dirs):
                    stack.append((d, depth + 1))

            for f in files:
                yield f
