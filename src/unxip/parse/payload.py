"""Copy member payloads out of the XAR heap.

Each entry is extracted on its own: a failed seek or short read leaves that
entry's output truncated and is reported in its ``ExtractResult``, without
affecting other entries.
"""
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .header import XarHeader
from .toc import TocEntry

CHUNK_SIZE = 2048

LOG = logging.getLogger(__name__)

Progress = Callable[["ExtractResult"], None]


@dataclass(frozen=True)
class ExtractResult:
    entry: TocEntry
    path: Optional[Path]
    written: int
    success: bool


def resolve_output(output_dir: Path, name: str) -> Optional[Path]:
    """Return the output path for a member name, or ``None`` if the name
    would escape the output directory."""
    if not name or Path(name).is_absolute():
        return None
    base = output_dir.resolve()
    path = (base / name).resolve()
    if path == base or base not in path.parents:
        return None
    return path


def copy_payload(
    f: BinaryIO, out: BinaryIO, offset: int, size: int, chunk_size: int = CHUNK_SIZE
) -> int:
    """Copy ``size`` bytes from ``offset`` in ``f`` to ``out``.

    Returns the number of bytes written, which is less than ``size`` if the
    source ends early.
    """
    end = f.seek(0, os.SEEK_END)
    if offset > end:
        LOG.debug("Offset %d is past the end of the source (%d)", offset, end)
        return 0
    f.seek(offset, os.SEEK_SET)

    written = 0
    remaining = size
    while remaining:
        buf = f.read(min(chunk_size, remaining))
        if not buf:
            break
        out.write(buf)
        written += len(buf)
        remaining -= len(buf)
    return written


def _size_on_disk(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


def extract_entry(
    f: BinaryIO,
    header: XarHeader,
    entry: TocEntry,
    output_dir: Path,
    chunk_size: int = CHUNK_SIZE,
) -> ExtractResult:
    path = resolve_output(output_dir, entry.name)
    if path is None:
        LOG.error("Entry '%s' is outside the output directory", entry.name)
        return ExtractResult(entry, None, 0, False)

    offset = entry.absolute_offset(header)
    LOG.debug("Entry '%s', data from %d to %d", entry.name, offset, offset + entry.size)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as out:
            written = copy_payload(f, out, offset, entry.size, chunk_size)
    except OSError as e:
        LOG.error("Entry '%s' can't be written: %s", entry.name, e)
        # whatever reached the output before the error stays there
        return ExtractResult(entry, path, _size_on_disk(path), False)

    success = written == entry.size
    if not success:
        LOG.debug("Entry '%s' truncated, %d of %d bytes", entry.name, written, entry.size)
    return ExtractResult(entry, path, written, success)


def _extract_group(
    input_path: Path,
    header: XarHeader,
    entries: Sequence[TocEntry],
    output_dir: Path,
    chunk_size: int,
) -> List[ExtractResult]:
    # every worker needs its own handle, since the file position is shared
    with input_path.open("rb") as f:
        return [
            extract_entry(f, header, entry, output_dir, chunk_size) for entry in entries
        ]


def group_by_output(entries: Sequence[TocEntry], output_dir: Path) -> List[List[int]]:
    """Group entry indices by output path, in TOC order.

    Entries sharing an output path must be written one after the other, so
    the last one in the TOC wins. Refused names are never written, and get a
    group each.
    """
    groups: Dict[Union[Path, int], List[int]] = {}
    for i, entry in enumerate(entries):
        path = resolve_output(output_dir, entry.name)
        key: Union[Path, int] = i if path is None else path
        groups.setdefault(key, []).append(i)
    return list(groups.values())


def extract_entries(  # pylint: disable=too-many-arguments
    input_path: Path,
    header: XarHeader,
    entries: Sequence[TocEntry],
    output_dir: Path,
    chunk_size: int = CHUNK_SIZE,
    jobs: int = 1,
    progress: Optional[Progress] = None,
) -> List[ExtractResult]:
    """Extract all entries, in TOC order.

    With ``jobs > 1``, entries are extracted by a thread pool, one task per
    output path. Results are still returned, and ``progress`` called, in TOC
    order.
    """
    results: List[ExtractResult] = []

    if jobs <= 1:
        with input_path.open("rb") as f:
            for entry in entries:
                result = extract_entry(f, header, entry, output_dir, chunk_size)
                if progress:
                    progress(result)
                results.append(result)
        return results

    pending: Dict[int, Tuple["Future[List[ExtractResult]]", int]] = {}
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        for indices in group_by_output(entries, output_dir):
            future = executor.submit(
                _extract_group,
                input_path,
                header,
                [entries[i] for i in indices],
                output_dir,
                chunk_size,
            )
            for position, i in enumerate(indices):
                pending[i] = (future, position)

        for i in range(len(entries)):
            future, position = pending[i]
            result = future.result()[position]
            if progress:
                progress(result)
            results.append(result)
    return results
