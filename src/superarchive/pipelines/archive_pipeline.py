"""
End-to-end archive run.

Validate the destination, archive the root unit, discover and archive every
nested repository, then merge or separate the results. All temporary files
live in one scratch directory owned by the run's WorkLedger, which is drained
however the run ends.
"""

import logging
import tempfile
from pathlib import Path
from typing import List, Optional

from superarchive import PROGRAM
from superarchive.archive.archiver import UnitArchiver
from superarchive.archive.merger import ArchiveMerger, validate_destination
from superarchive.archive.producer import ArchiveProducer, GitArchiveProducer
from superarchive.core.config import settings
from superarchive.core.utils import artifact_file_name
from superarchive.discovery.discoverer import discover_units
from superarchive.ledger.work_ledger import WorkLedger
from superarchive.schemas.units import ArchiveArtifact, RunConfiguration, Unit

logger = logging.getLogger(__name__)


def _staging_path(scratch: Path, file_name: str) -> Path:
    """Return a free path in `scratch` for `file_name`, numbering it on collision."""
    candidate = scratch / file_name
    stem, dot, suffix = file_name.rpartition(".")
    counter = 1
    while candidate.exists():
        candidate = scratch / f"{stem}-{counter}{dot}{suffix}"
        counter += 1
    return candidate


def run_archive(
    config: RunConfiguration,
    producer: Optional[ArchiveProducer] = None,
    tmpdir: Optional[Path] = None,
) -> List[Path]:
    """
    Archive the project described by `config`.

    Args:
        config: Immutable run configuration
        producer: Archive-producer to use; defaults to `git archive`
        tmpdir: Temporary storage root; defaults to the configured TMPDIR

    Returns:
        The final output files: one in combined mode, one per unit in separate mode.
    """
    validate_destination(config)
    producer = producer or GitArchiveProducer()
    tmp_root = Path(tmpdir) if tmpdir is not None else settings.tmpdir

    with WorkLedger() as ledger:
        scratch = Path(tempfile.mkdtemp(prefix=f"{PROGRAM}.", dir=tmp_root))
        ledger.register_directory(scratch)
        archiver = UnitArchiver(producer, config.workdir, ledger)

        def _archive(unit_path: str) -> ArchiveArtifact:
            unit = Unit.for_path(unit_path, config)
            name = artifact_file_name(config.workdir, unit.relative_path, config.format)
            return archiver.archive(unit, _staging_path(scratch, name))

        artifacts = [_archive("")]
        for unit_path in discover_units(config.workdir):
            artifacts.append(_archive(unit_path))

        logger.info("Produced %d archives", len(artifacts))
        return ArchiveMerger(ledger).merge(artifacts, config.mode, config.destination)
