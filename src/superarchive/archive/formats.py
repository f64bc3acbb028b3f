"""
Container-level primitives used to splice archives of the same format.

Nothing here decodes file contents: tar archives are joined at the record
level, and zip entries are moved as raw local records (header, compressed
data and any data descriptor) with their central-directory metadata intact.
The SPLICE_STRATEGIES table is the closed set of formats combined mode
supports.
"""

import copy
import logging
import os
import shutil
import struct
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Tuple

from superarchive.core.errors import MergeError, UnsupportedFormatError
from superarchive.schemas.units import ArchiveFormat

logger = logging.getLogger(__name__)

SpliceStrategy = Callable[[Path, Path], None]

BLOCKSIZE = tarfile.BLOCKSIZE
ZERO_BLOCK = tarfile.NUL * BLOCKSIZE
ZIP64_EXTRA_ID = 0x0001


def _padded(size: int) -> int:
    blocks, remainder = divmod(size, BLOCKSIZE)
    return (blocks + (1 if remainder else 0)) * BLOCKSIZE


def _pax_size(data: bytes) -> Optional[int]:
    """Pull a "size" override out of a pax extended header's records."""
    for record in data.split(b"\n"):
        _, _, keyword_value = record.partition(b" ")
        keyword, _, value = keyword_value.partition(b"=")
        if keyword == b"size":
            return int(value)
    return None


def tar_data_end(path: Path) -> int:
    """
    Return the offset just past the last record of an uncompressed tar.

    Header blocks are walked until the first all-zero block, which is where
    the end-of-archive marker starts and an appended archive must be written.
    Extended headers (pax, GNU long names) are stepped over like any other
    record, so an archive holding only a pax global header is a valid, empty
    archive.

    Raises:
        tarfile.ReadError: If a header is corrupt or the file ends mid-record
    """
    offset = 0
    size_override = None
    with open(path, "rb") as handle:
        while True:
            handle.seek(offset)
            block = handle.read(BLOCKSIZE)
            if len(block) < BLOCKSIZE:
                raise tarfile.ReadError(f"truncated header at offset {offset}")
            if block == ZERO_BLOCK:
                return offset

            try:
                info = tarfile.TarInfo.frombuf(block, tarfile.ENCODING, "surrogateescape")
            except tarfile.HeaderError as exc:
                raise tarfile.ReadError(f"bad header at offset {offset}: {exc}") from exc

            size = info.size
            if size_override is not None and info.type not in (tarfile.XHDTYPE, tarfile.XGLTYPE):
                size = size_override
                size_override = None
            if info.type == tarfile.XHDTYPE:
                size_override = _pax_size(handle.read(info.size))
            if info.type in (tarfile.LNKTYPE, tarfile.SYMTYPE, tarfile.DIRTYPE, tarfile.CHRTYPE,
                             tarfile.BLKTYPE, tarfile.FIFOTYPE):
                size = 0

            offset += BLOCKSIZE + _padded(size)


def tar_concatenate(accumulator: Path, member: Path) -> None:
    """
    Append the records of `member` onto `accumulator`.

    The accumulator's end-of-archive marker is cut off and the member file is
    copied after it byte for byte, so the result lists the accumulator's
    entries followed by the member's.
    """
    try:
        end = tar_data_end(accumulator)
    except (OSError, tarfile.TarError) as exc:
        raise MergeError(str(accumulator), f"cannot read accumulator: {exc}") from exc
    try:
        # Reject a corrupt member before touching the accumulator.
        tar_data_end(member)
        with open(accumulator, "r+b") as out, open(member, "rb") as src:
            out.seek(end)
            out.truncate()
            shutil.copyfileobj(src, out)
    except (OSError, tarfile.TarError) as exc:
        raise MergeError(str(member), str(exc)) from exc
    logger.debug("Concatenated %s onto %s at offset %d", member, accumulator, end)


def _strip_zip64_extra(extra: bytes) -> bytes:
    """Drop the zip64 field; zipfile writes a fresh one when the new offsets need it."""
    kept = []
    position = 0
    while position + 4 <= len(extra):
        tag, size = struct.unpack("<HH", extra[position:position + 4])
        if tag != ZIP64_EXTRA_ID:
            kept.append(extra[position:position + 4 + size])
        position += 4 + size
    return b"".join(kept)


def _raw_records(archive: zipfile.ZipFile, handle: BinaryIO) -> Iterator[Tuple[zipfile.ZipInfo, bytes]]:
    """
    Yield each entry with the raw bytes of its local record.

    A record runs from its local header up to the next local header, or to the
    central directory for the last one, so data descriptors come along too.
    """
    infos = archive.infolist()
    boundaries = sorted({info.header_offset for info in infos} | {archive.start_dir})
    next_boundary = dict(zip(boundaries, boundaries[1:]))
    for info in infos:
        handle.seek(info.header_offset)
        yield info, handle.read(next_boundary[info.header_offset] - info.header_offset)


def _append_raw(dst: zipfile.ZipFile, info: zipfile.ZipInfo, record: bytes) -> None:
    """
    Write a raw local record into `dst` and list it in the central directory.

    The record is placed where the central directory currently starts; zipfile
    rewrites the directory after it when `dst` is closed.
    """
    entry = copy.copy(info)
    entry.extra = _strip_zip64_extra(info.extra)
    dst.fp.seek(dst.start_dir)
    entry.header_offset = dst.fp.tell()
    dst.fp.write(record)
    dst.start_dir = dst.fp.tell()
    dst.filelist.append(entry)
    dst.NameToInfo[entry.filename] = entry
    # zipfile only writes a central directory on close when it saw a change.
    dst._didModify = True


def zip_grow(accumulator: Path, member: Path) -> None:
    """
    Grow `accumulator` with every entry of `member`.

    Entry names are taken from inside the member, which already carry the
    unit's prefix. Names the accumulator already holds are skipped.
    """
    copied = 0
    try:
        with open(member, "rb") as handle, zipfile.ZipFile(handle) as src:
            with zipfile.ZipFile(accumulator, "a") as dst:
                for info, record in _raw_records(src, handle):
                    if info.filename in dst.NameToInfo:
                        logger.debug("Skipping duplicate entry %s from %s", info.filename, member)
                        continue
                    _append_raw(dst, info, record)
                    copied += 1
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise MergeError(str(member), str(exc)) from exc
    logger.debug("Grew %s with %d entries from %s", accumulator, copied, member)


def zip_delete(archive: Path, name: str) -> bool:
    """
    Remove the entry called `name` from a zip archive, ignoring any trailing "/".

    The remaining records are copied raw into a temporary sibling file that
    then replaces the archive. Returns False when no entry matched and the
    archive was left untouched.
    """
    target = name.rstrip("/")
    with open(archive, "rb") as handle, zipfile.ZipFile(handle) as src:
        infos = src.infolist()
        if all(info.filename.rstrip("/") != target for info in infos):
            return False

        fd, tmp_name = tempfile.mkstemp(prefix=f".{archive.name}.", dir=archive.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            with zipfile.ZipFile(tmp_path, "w") as dst:
                dst.comment = src.comment
                for info, record in _raw_records(src, handle):
                    if info.filename.rstrip("/") != target:
                        _append_raw(dst, info, record)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
    os.replace(tmp_path, archive)
    logger.debug("Deleted entry %s from %s", target, archive)
    return True


SPLICE_STRATEGIES: Dict[str, SpliceStrategy] = {
    ArchiveFormat.TAR.value: tar_concatenate,
    ArchiveFormat.ZIP.value: zip_grow,
}


def get_splice_strategy(archive_format: str) -> SpliceStrategy:
    """Look up the splice rule for `archive_format` or raise UnsupportedFormatError."""
    try:
        return SPLICE_STRATEGIES[archive_format]
    except KeyError:
        raise UnsupportedFormatError(archive_format) from None


def needs_root_entry_removal(archive_format: str) -> bool:
    """Zip archives carry an explicit entry for the prefix directory; tar merges tolerate it."""
    return archive_format == ArchiveFormat.ZIP.value
