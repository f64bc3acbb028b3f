"""
Archive merging and final placement.

Combined mode splices every artifact into the first one (the root unit's)
and moves the result to the destination. Separate mode moves each artifact
to the destination directory as it is.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Sequence

from superarchive.archive.formats import get_splice_strategy
from superarchive.core.errors import MergeError, ValidationError
from superarchive.ledger.work_ledger import WorkLedger
from superarchive.schemas.units import ArchiveArtifact, MergeMode, RunConfiguration

logger = logging.getLogger(__name__)


def validate_destination(config: RunConfiguration) -> None:
    """
    Check that destination and mode fit together before any archiving starts.

    Raises:
        ValidationError: Separate mode without an existing destination directory
        UnsupportedFormatError: Combined mode for a format with no splice rule
    """
    destination = Path(config.destination)
    if config.mode is MergeMode.SEPARATE:
        if not destination.is_dir():
            raise ValidationError(
                "When creating multiple archives, your destination must be a directory. "
                "If it's not, you risk being surprised when your files are overwritten."
            )
        return

    get_splice_strategy(config.format)
    if not destination.is_dir() and not destination.parent.is_dir():
        raise ValidationError(f"Cannot write archive to '{destination}': parent directory does not exist")


class ArchiveMerger:
    """Owns the accumulator in combined mode and hands finished files to their destination."""

    def __init__(self, ledger: WorkLedger):
        self.ledger = ledger

    def merge(
        self,
        artifacts: Sequence[ArchiveArtifact],
        mode: MergeMode,
        destination: Path,
    ) -> List[Path]:
        """
        Merge or separate `artifacts` and place the results at `destination`.

        Returns:
            The final output paths, in artifact order.
        """
        if not artifacts:
            return []
        destination = Path(destination)
        if mode is MergeMode.SEPARATE:
            return self._place_separately(artifacts, destination)
        return [self._combine(artifacts, destination)]

    def _place_separately(self, artifacts: Sequence[ArchiveArtifact], destination: Path) -> List[Path]:
        if not destination.is_dir():
            raise ValidationError(f"Destination '{destination}' is not a directory")
        placed = []
        for artifact in artifacts:
            target = destination / artifact.file_path.name
            self._place(artifact.file_path, target)
            placed.append(target)
        return placed

    def _combine(self, artifacts: Sequence[ArchiveArtifact], destination: Path) -> Path:
        accumulator = artifacts[0]
        splice = get_splice_strategy(accumulator.format)

        for member in artifacts[1:]:
            if member.format != accumulator.format:
                raise MergeError(
                    str(member.file_path),
                    f"format '{member.format}' does not match '{accumulator.format}'",
                )
            splice(accumulator.file_path, member.file_path)
            try:
                member.file_path.unlink()
            except OSError as exc:
                raise MergeError(str(member.file_path), f"merged but not removed: {exc}") from exc
            self.ledger.mark_handled(member.file_path)
            logger.info("Merged %s into %s", member.owner_unit.relative_path, accumulator.file_path.name)

        target = destination / accumulator.file_path.name if destination.is_dir() else destination
        self._place(accumulator.file_path, target)
        return target

    def _place(self, source: Path, target: Path) -> None:
        try:
            shutil.move(str(source), str(target))
        except OSError as exc:
            raise MergeError(str(source), f"cannot move to '{target}': {exc}") from exc
        self.ledger.mark_handled(source)
        logger.info("Wrote %s", target)
