"""Extract '.xip' (XAR) archives to a directory.

The inflated table of contents is saved next to the members for diagnostics,
and a manifest, written beside the output directory, records where each
member came from and whether it was extracted in full.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from ..parse.header import read_header_from
from ..parse.payload import ExtractResult, Progress, extract_entries
from ..parse.toc import parse_toc, read_toc
from .models import MANIFEST_SUFFIX, EntryInfo, ExtractConfig, HeaderInfo, XipManifest
from .utils import manifest_path

LOG = logging.getLogger(__name__)


class ProgressPrinter:
    """Print one status line per member, as the extraction proceeds."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def __call__(self, result: ExtractResult) -> None:
        stream = sys.stdout if self.stream is None else self.stream
        path = result.path if result.path else result.entry.name
        status = "done" if result.success else "error"
        stream.write(f"{path}\t{status}\n")
        stream.flush()


def xip_to_dir(
    input_xip: Path,
    output_dir: Path,
    config: Optional[ExtractConfig] = None,
    progress: Optional[Progress] = None,
) -> XipManifest:
    """Extract every member of ``input_xip`` into ``output_dir``.

    :raises XarError: If the header or table of contents is invalid. Nothing
        is extracted in that case.
    :raises OSError: If the archive can't be read.
    """
    if config is None:
        config = ExtractConfig()

    with input_xip.open("rb") as f:
        header = read_header_from(f, config.max_toc_size)
        toc = read_toc(f, header)

    # dump the TOC before parsing it, so a broken document can be inspected
    output_dir.mkdir(parents=True, exist_ok=True)
    (output_dir / config.toc_filename).write_bytes(toc)
    entries = parse_toc(toc)

    LOG.info("Extracting %d entries to '%s'", len(entries), output_dir)
    results = extract_entries(
        input_xip,
        header,
        entries,
        output_dir,
        chunk_size=config.chunk_size,
        jobs=config.jobs,
        progress=progress,
    )

    manifest = XipManifest(
        header=HeaderInfo.from_header(header),
        entries=[EntryInfo.from_result(result, header) for result in results],
    )
    if config.manifest:
        manifest_path(output_dir, MANIFEST_SUFFIX).write_text(
            manifest.model_dump_json(indent=2), encoding="utf-8"
        )

    failed = len(manifest.failed)
    if failed:
        LOG.warning("%d of %d entries were not extracted in full", failed, len(results))
    return manifest
