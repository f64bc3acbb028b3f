"""
Per-unit archiving.

Runs the archive-producer for one unit, registers the result with the work
ledger and applies the zip root-entry fix-up.
"""

import logging
import subprocess
import zipfile
from pathlib import Path

from superarchive.archive.formats import needs_root_entry_removal, zip_delete
from superarchive.archive.producer import ArchiveProducer
from superarchive.core.errors import ArchiveProductionError
from superarchive.ledger.work_ledger import WorkLedger
from superarchive.schemas.units import ArchiveArtifact, Unit

logger = logging.getLogger(__name__)


class UnitArchiver:
    """
    Produce one staged archive per unit.

    The unit's location is resolved against `workdir` and handed to the
    producer as an absolute path; the process working directory is never
    changed.
    """

    def __init__(self, producer: ArchiveProducer, workdir: Path, ledger: WorkLedger):
        self.producer = producer
        self.workdir = Path(workdir).resolve()
        self.ledger = ledger

    def archive(self, unit: Unit, dest_path: Path) -> ArchiveArtifact:
        """
        Archive `unit` into `dest_path`.

        Raises:
            ArchiveProductionError: If the producer fails (nothing is registered)
                or the zip fix-up fails (the artifact stays registered).
        """
        dest_path = Path(dest_path)
        source = unit.absolute_path(self.workdir)
        try:
            self.producer.produce(
                source, unit.archive_format, unit.prefix, unit.revision, dest_path
            )
        except subprocess.CalledProcessError as exc:
            self._discard_partial(dest_path)
            stderr = exc.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode(errors="replace")
            raise ArchiveProductionError(unit.relative_path, (stderr or "").strip() or str(exc)) from exc
        except FileExistsError as exc:
            raise ArchiveProductionError(unit.relative_path, f"refusing to overwrite {exc.filename}") from exc
        except OSError as exc:
            self._discard_partial(dest_path)
            raise ArchiveProductionError(unit.relative_path, str(exc)) from exc
        except BaseException:
            # Interrupted (a termination signal, for instance): drop the partial output.
            self._discard_partial(dest_path)
            raise

        self.ledger.register(dest_path)
        artifact = ArchiveArtifact(format=unit.archive_format, file_path=dest_path, owner_unit=unit)

        if not unit.is_root and needs_root_entry_removal(unit.archive_format):
            self.ledger.register_directory(dest_path.parent)
            root_entry = unit.prefix.rstrip("/")
            try:
                # The parent archive already holds this directory entry.
                zip_delete(dest_path, root_entry)
            except (OSError, zipfile.BadZipFile) as exc:
                raise ArchiveProductionError(
                    unit.relative_path, f"cannot drop root entry '{root_entry}': {exc}"
                ) from exc

        logger.info("Archived %s -> %s", unit.relative_path or ".", dest_path)
        return artifact

    @staticmethod
    def _discard_partial(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove partial archive %s: %s", path, exc)
