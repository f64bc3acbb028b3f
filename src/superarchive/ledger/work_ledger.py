"""
Work ledger for temporary artifacts.

Every temporary file is registered here before anything can fail, and every
registered file is either handed off (merged away or moved to its final
place) or deleted when the ledger is drained. Draining runs when the ledger's
context exits, whether the run succeeded or not.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class WorkLedger:
    """
    Ordered record of pending artifact files plus directories to tidy up.

    Artifact paths keep the order they were registered in; that order is the
    merge order. Cleanup directories are removed on drain only when they
    still exist and are empty.
    """

    def __init__(self):
        self._pending: Dict[int, Path] = {}
        self._next_position = 0
        self._cleanup_dirs: List[Path] = []
        self.drained = False

    def __enter__(self) -> "WorkLedger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.drain()

    def register(self, artifact_path: Path) -> int:
        """Record `artifact_path` for guaranteed handling; returns its sequence position."""
        path = Path(artifact_path)
        position = self._next_position
        self._pending[position] = path
        self._next_position += 1
        logger.debug("Registered artifact #%d: %s", position, path)
        return position

    def register_directory(self, directory: Path) -> None:
        """Record a directory to remove at drain time if it is left empty."""
        directory = Path(directory)
        if directory not in self._cleanup_dirs:
            self._cleanup_dirs.append(directory)

    def mark_handled(self, artifact_path: Path) -> None:
        """Drop `artifact_path` from pending cleanup once it is merged away or relocated."""
        path = Path(artifact_path)
        for position, pending in list(self._pending.items()):
            if pending == path:
                del self._pending[position]
                logger.debug("Artifact #%d handled: %s", position, path)
                return
        raise KeyError(f"Artifact not registered: {path}")

    def is_pending(self, artifact_path: Path) -> bool:
        return Path(artifact_path) in self._pending.values()

    @property
    def pending(self) -> List[Path]:
        """Pending artifact paths in sequence order."""
        return [self._pending[position] for position in sorted(self._pending)]

    @property
    def cleanup_directories(self) -> List[Path]:
        return list(self._cleanup_dirs)

    def drain(self) -> None:
        """
        Delete every still-pending artifact and remove empty cleanup directories.

        Safe to call more than once. Errors are logged rather than raised so
        that one stuck file does not keep the others on disk.
        """
        for path in self.pending:
            try:
                path.unlink(missing_ok=True)
                logger.debug("Removed temporary artifact %s", path)
            except OSError as exc:
                logger.warning("Could not remove temporary artifact %s: %s", path, exc)
        self._pending.clear()

        # Deepest first so nested scratch directories empty out before their parents.
        for directory in sorted(self._cleanup_dirs, key=lambda d: len(d.parts), reverse=True):
            if not directory.is_dir():
                continue
            try:
                next(directory.iterdir())
            except StopIteration:
                try:
                    directory.rmdir()
                    logger.debug("Removed cleanup directory %s", directory)
                except OSError as exc:
                    logger.warning("Could not remove directory %s: %s", directory, exc)
            except OSError as exc:
                logger.warning("Could not inspect directory %s: %s", directory, exc)
            else:
                logger.debug("Leaving non-empty directory %s", directory)
        self._cleanup_dirs.clear()
        self.drained = True
