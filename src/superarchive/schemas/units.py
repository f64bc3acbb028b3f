"""
Schemas for the units of work handled during a run.

A Unit is one repository boundary (the superproject or a nested repository),
an ArchiveArtifact is the container file produced for it, and a
RunConfiguration holds the settings that stay fixed for the whole run.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from superarchive.core.utils import compose_prefix, normalize_unit_path


class ArchiveFormat(str, Enum):
    """Container formats with a splice rule for combined mode."""
    TAR = "tar"
    ZIP = "zip"


class MergeMode(str, Enum):
    """How per-unit archives end up at the destination."""
    COMBINED = "combined"   # Spliced into one archive
    SEPARATE = "separate"   # One output file per unit


class RunConfiguration(BaseModel):
    """Settings that stay immutable for the duration of one run."""
    model_config = ConfigDict(frozen=True)

    # Kept as a string: any backend `git archive` understands may be used in separate mode.
    format: str = ArchiveFormat.TAR.value
    global_prefix: str = ""
    separate: bool = False
    destination: Path = Field(default_factory=Path.cwd)
    revision: str = "HEAD"
    workdir: Path = Field(default_factory=Path.cwd)

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("format must not be empty")
        return value

    @field_validator("workdir")
    @classmethod
    def _absolute_workdir(cls, value: Path) -> Path:
        return value.resolve()

    @property
    def mode(self) -> MergeMode:
        return MergeMode.SEPARATE if self.separate else MergeMode.COMBINED


class Unit(BaseModel):
    """One archivable repository boundary."""
    model_config = ConfigDict(frozen=True)

    relative_path: str = ""     # "" for the root unit, otherwise "dir/sub/"
    archive_format: str = ArchiveFormat.TAR.value
    prefix: str = ""
    revision: str = "HEAD"

    @field_validator("relative_path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return normalize_unit_path(value)

    @classmethod
    def for_path(cls, relative_path: str, config: RunConfiguration) -> "Unit":
        """Build a unit for `relative_path` with its prefix composed under the global prefix."""
        return cls(
            relative_path=relative_path,
            archive_format=config.format,
            prefix=compose_prefix(config.global_prefix, relative_path),
            revision=config.revision,
        )

    @property
    def is_root(self) -> bool:
        return self.relative_path == ""

    def absolute_path(self, workdir: Path) -> Path:
        return workdir / self.relative_path if self.relative_path else workdir


class ArchiveArtifact(BaseModel):
    """A container file produced for a unit and staged in temporary storage."""
    format: str
    file_path: Path
    owner_unit: Unit
