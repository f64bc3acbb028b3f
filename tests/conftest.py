"""Shared fixtures: a fake archive-producer and a real git repository factory."""

import io
import os
import shutil
import subprocess
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from superarchive.archive.producer import ArchiveProducer


def _with_parent_dirs(names: List[str]) -> List[str]:
    """Add a "dir/" entry for every directory a file lives in, as git archive does."""
    entries = []
    seen = set()
    for name in names:
        parts = name.rstrip("/").split("/")
        for depth in range(1, len(parts)):
            directory = "/".join(parts[:depth]) + "/"
            if directory not in seen:
                seen.add(directory)
                entries.append(directory)
        if name not in seen:
            seen.add(name)
            entries.append(name)
    return entries


class FakeProducer(ArchiveProducer):
    """
    Writes real tar/zip archives from an in-memory file map.

    `trees` maps a repository path to {relative name: content}. A name that
    ends in "/" becomes a bare directory entry (what a gitlink looks like in
    the parent's archive). Like git archive, a non-empty prefix gets its own
    directory entry.
    """

    def __init__(self, trees: Dict[Path, Dict[str, bytes]], fail_for: Optional[Path] = None):
        self.trees = {Path(path).resolve(): files for path, files in trees.items()}
        self.fail_for = Path(fail_for).resolve() if fail_for else None
        self.calls: List[Tuple[Path, str, str, str, Path]] = []

    def produce(self, repository, archive_format, prefix, revision, output):
        repository = Path(repository).resolve()
        self.calls.append((repository, archive_format, prefix, revision, Path(output)))
        if repository == self.fail_for:
            raise subprocess.CalledProcessError(128, ["git", "archive"], stderr=b"fatal: not a valid object name")

        files = self.trees[repository]
        names = _with_parent_dirs(sorted(files))
        if prefix.endswith("/"):
            names = [prefix] + [prefix + name for name in names]
        else:
            names = [prefix + name for name in names]
        contents = {prefix + name: data for name, data in files.items()}

        if archive_format == "tar":
            with tarfile.open(output, "x:") as archive:
                for name in names:
                    info = tarfile.TarInfo(name.rstrip("/"))
                    if name.endswith("/"):
                        info.type = tarfile.DIRTYPE
                        info.mode = 0o755
                        archive.addfile(info)
                    else:
                        data = contents[name]
                        info.size = len(data)
                        archive.addfile(info, io.BytesIO(data))
        elif archive_format == "zip":
            with zipfile.ZipFile(output, "x") as archive:
                for name in names:
                    archive.writestr(name, b"" if name.endswith("/") else contents[name])
        else:
            Path(output).write_bytes(b"opaque " + archive_format.encode())


def tar_names(path: Path) -> List[str]:
    with tarfile.open(path) as archive:
        return archive.getnames()


def tar_files(path: Path) -> List[str]:
    with tarfile.open(path) as archive:
        return [member.name for member in archive.getmembers() if member.isfile()]


def zip_names(path: Path) -> List[str]:
    with zipfile.ZipFile(path) as archive:
        return archive.namelist()


@pytest.fixture
def scratch_root(tmp_path):
    root = tmp_path / "tmp"
    root.mkdir()
    return root


@pytest.fixture
def project(tmp_path):
    """
    A superproject with one nested repository at lib/ and one at lib/vendor/.

    Only the `.git` markers exist on disk; contents come from FakeProducer.
    """
    root = tmp_path / "superproject"
    for relative in ("", "lib", "lib/vendor"):
        (root / relative / ".git").mkdir(parents=True)
    trees = {
        root: {"README.md": b"root readme\n", "src/main.py": b"print('hi')\n", "lib/": b""},
        root / "lib": {"lib.c": b"int x;\n", "vendor/": b""},
        root / "lib" / "vendor": {"vendor.h": b"#pragma once\n"},
    }
    return root, trees


GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test Author",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "Test Author",
    "GIT_COMMITTER_EMAIL": "author@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def git(cwd: Path, *args: str) -> str:
    env = dict(os.environ, **GIT_ENV)
    result = subprocess.run(
        ["git", "-c", "init.defaultBranch=main", "-c", "commit.gpgsign=false", *args],
        cwd=cwd, env=env, check=True, capture_output=True, text=True,
    )
    return result.stdout


@pytest.fixture
def make_repo():
    """Factory: create a git repository at `path` holding `files`, committed."""

    def _make(path: Path, files: Dict[str, str]) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        git(path, "init", "-q")
        for name, content in files.items():
            target = path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        git(path, "add", "-A")
        git(path, "commit", "-q", "-m", "initial")
        return path

    return _make


@pytest.fixture
def nest_repo():
    """Record an already-committed nested repository in its parent as a gitlink and commit."""

    def _nest(parent: Path, relative: str) -> None:
        git(parent, "add", relative)
        git(parent, "commit", "-q", "-m", f"add {relative}")

    return _nest
