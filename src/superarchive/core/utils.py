"""
Path-string helpers shared across modules: prefix composition and artifact naming.

All archive-internal paths are POSIX strings. A unit's relative path is either
the empty string (the root unit) or a path with exactly one trailing "/".
"""

import os
import posixpath
from pathlib import PurePath


def normalize_unit_path(path: str) -> str:
    """
    Normalize a unit's relative path to POSIX form with a single trailing "/".

    Leading "./", duplicate separators and host separators are folded away.
    The root ("", ".", "./") normalizes to the empty string.
    """
    cleaned = path.strip().replace(os.sep, "/")
    if not cleaned:
        return ""
    cleaned = posixpath.normpath(cleaned)
    if cleaned == ".":
        return ""
    if cleaned.startswith("/") or cleaned == ".." or cleaned.startswith("../"):
        raise ValueError(f"Unit path must be relative to the project root: {path!r}")
    return cleaned + "/"


def compose_prefix(global_prefix: str, unit_path: str) -> str:
    """
    Build the archive prefix for a unit.

    This is plain concatenation, so a global prefix of "proj-" and a unit at
    "lib/" give "proj-lib/". A global prefix meant as a directory must carry
    its own trailing "/".
    """
    return global_prefix + normalize_unit_path(unit_path)


def flatten_unit_name(unit_path: str) -> str:
    """Turn "lib/sub/" into "lib.sub" for use as a file name."""
    return normalize_unit_path(unit_path).rstrip("/").replace("/", ".")


def artifact_file_name(project_dir: PurePath, unit_path: str, archive_format: str) -> str:
    """
    File name for a unit's archive.

    The root unit is named after the project directory, nested units after
    their flattened relative path.
    """
    stem = flatten_unit_name(unit_path) or project_dir.name
    return f"{stem}.{archive_format}"
