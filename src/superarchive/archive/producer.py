"""
Archive-producer capability.

An ArchiveProducer turns a repository checkout plus a revision into a
container file. GitArchiveProducer does it with `git archive`, which already
leaves nested repositories out of each archive.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from superarchive.core.config import settings

logger = logging.getLogger(__name__)


class ArchiveProducer(ABC):
    """Abstract base for anything that can produce an archive of one repository."""

    @abstractmethod
    def produce(
        self,
        repository: Path,
        archive_format: str,
        prefix: str,
        revision: str,
        output: Path,
    ) -> None:
        """
        Write an archive of `repository` at `revision` to `output`.

        Args:
            repository: Absolute path of the repository checkout
            archive_format: Container format name, e.g. "tar" or "zip"
            prefix: String prepended to every entry path inside the archive
            revision: Branch, tag or commit to archive
            output: File to create; it must not exist yet

        Raises:
            OSError: If the output cannot be written
            subprocess.CalledProcessError: If the underlying tool fails
        """


class GitArchiveProducer(ArchiveProducer):
    """Produce archives by running `git archive` inside the repository."""

    def __init__(self, git_executable: Optional[str] = None):
        self.git_executable = git_executable or settings.git_executable

    def build_command(self, archive_format: str, prefix: str, revision: str) -> list:
        return [
            self.git_executable,
            "archive",
            f"--format={archive_format}",
            f"--prefix={prefix}",
            revision,
        ]

    def produce(
        self,
        repository: Path,
        archive_format: str,
        prefix: str,
        revision: str,
        output: Path,
    ) -> None:
        command = self.build_command(archive_format, prefix, revision)
        logger.debug("Running %s in %s", " ".join(command), repository)
        # "x" refuses to clobber an existing file.
        with open(output, "xb") as handle:
            subprocess.run(
                command,
                cwd=repository,
                stdout=handle,
                stderr=subprocess.PIPE,
                check=True,
            )
