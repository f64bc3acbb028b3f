"""
Repository boundary discovery.

Walks the working tree looking for `.git` markers below the project root and
reports each one as the relative path of a nested repository. A `.git`
directory marks a classic nested clone; a `.git` file is the gitlink a
submodule checkout leaves behind. Either counts as a boundary.
"""

import logging
import os
from pathlib import Path
from typing import Iterator, List

from superarchive.core.errors import DiscoveryError
from superarchive.core.utils import normalize_unit_path

logger = logging.getLogger(__name__)

MARKER_NAME = ".git"


def is_boundary_marker(path: Path) -> bool:
    """Return True if `path` is a `.git` directory or gitlink file."""
    return path.name == MARKER_NAME and (path.is_dir() or path.is_file())


def _walk_markers(root: Path) -> List[str]:
    def _raise(error: OSError) -> None:
        raise error

    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        current = Path(dirpath)
        # Never descend into a repository's own metadata.
        if MARKER_NAME in dirnames:
            dirnames.remove(MARKER_NAME)
            marker = current / MARKER_NAME
        elif MARKER_NAME in filenames:
            marker = current / MARKER_NAME
        else:
            marker = None
        dirnames.sort()

        if marker is None or not is_boundary_marker(marker):
            continue
        relative = os.path.relpath(marker.parent, root)
        if not relative.strip():
            continue
        unit_path = normalize_unit_path(relative)
        if unit_path:
            logger.debug("Found nested repository at %s", unit_path)
            found.append(unit_path)
    return found


def discover_units(workdir: Path) -> Iterator[str]:
    """
    Yield the relative path of every nested repository under `workdir`.

    Paths are POSIX-style with a trailing "/" (e.g. "lib/", "lib/vendor/").
    The root itself is never reported. The walk finishes before the first
    path is yielded, so a failure anywhere in the tree raises DiscoveryError
    without handing out a partial list.
    """
    root = Path(workdir)
    if not root.is_dir():
        raise DiscoveryError(f"Cannot scan '{root}': not a directory")
    try:
        found = _walk_markers(root)
    except OSError as exc:
        raise DiscoveryError(f"Cannot scan '{root}': {exc}") from exc

    logger.info("Discovered %d nested repositories under %s", len(found), root)
    return iter(found)
