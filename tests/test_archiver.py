"""Tests for the per-unit archiver."""

import pytest

from superarchive.archive.archiver import UnitArchiver
from superarchive.core.errors import ArchiveProductionError
from superarchive.ledger import WorkLedger
from superarchive.schemas.units import RunConfiguration, Unit
from tests.conftest import FakeProducer, tar_names, zip_names


def _config(root, **overrides):
    return RunConfiguration(workdir=root, destination=root, **overrides)


def test_producer_gets_absolute_path_and_composed_prefix(project, tmp_path):
    root, trees = project
    producer = FakeProducer(trees)
    ledger = WorkLedger()
    archiver = UnitArchiver(producer, root, ledger)
    unit = Unit.for_path("lib/vendor", _config(root, global_prefix="proj-", revision="v1.0"))

    artifact = archiver.archive(unit, tmp_path / "lib.vendor.tar")

    repository, archive_format, prefix, revision, _ = producer.calls[0]
    assert repository == (root / "lib" / "vendor").resolve()
    assert (archive_format, prefix, revision) == ("tar", "proj-lib/vendor/", "v1.0")
    assert artifact.owner_unit is unit
    assert ledger.pending == [tmp_path / "lib.vendor.tar"]
    assert all(name.startswith("proj-lib/vendor") for name in tar_names(artifact.file_path))


def test_zip_nested_unit_loses_its_root_entry(project, tmp_path):
    root, trees = project
    ledger = WorkLedger()
    archiver = UnitArchiver(FakeProducer(trees), root, ledger)
    unit = Unit.for_path("lib", _config(root, format="zip", global_prefix="proj/"))

    artifact = archiver.archive(unit, tmp_path / "lib.zip")

    names = zip_names(artifact.file_path)
    assert "proj/lib/" not in names
    assert "proj/lib/lib.c" in names
    assert "proj/lib/vendor/" in names
    assert ledger.cleanup_directories == [tmp_path]


def test_zip_root_unit_keeps_its_prefix_entry(project, tmp_path):
    root, trees = project
    archiver = UnitArchiver(FakeProducer(trees), root, WorkLedger())
    unit = Unit.for_path("", _config(root, format="zip", global_prefix="proj/"))

    artifact = archiver.archive(unit, tmp_path / "superproject.zip")

    assert "proj/" in zip_names(artifact.file_path)


def test_failed_production_registers_nothing(project, tmp_path):
    root, trees = project
    ledger = WorkLedger()
    archiver = UnitArchiver(FakeProducer(trees, fail_for=root / "lib"), root, ledger)
    unit = Unit.for_path("lib", _config(root))

    with pytest.raises(ArchiveProductionError) as excinfo:
        archiver.archive(unit, tmp_path / "lib.tar")

    assert excinfo.value.unit_path == "lib/"
    assert "not a valid object name" in str(excinfo.value)
    assert ledger.pending == []
    assert not (tmp_path / "lib.tar").exists()


def test_failed_zip_fixup_keeps_artifact_registered(project, tmp_path):
    root, trees = project
    ledger = WorkLedger()

    class BrokenZipProducer(FakeProducer):
        def produce(self, repository, archive_format, prefix, revision, output):
            output.write_bytes(b"not a zip")

    archiver = UnitArchiver(BrokenZipProducer(trees), root, ledger)
    unit = Unit.for_path("lib", _config(root, format="zip"))

    with pytest.raises(ArchiveProductionError):
        archiver.archive(unit, tmp_path / "lib.zip")

    assert ledger.pending == [tmp_path / "lib.zip"]
    ledger.drain()
    assert not (tmp_path / "lib.zip").exists()
