import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .. import __version__
from ..errors import XarError
from ..parse.header import MAX_TOC_SIZE
from ..parse.payload import CHUNK_SIZE
from .models import ExtractConfig
from .utils import configure_debug_logging, output_resolve
from .xip import ProgressPrinter, xip_to_dir

LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unxip", description="Extract the members of a '.xip' (XAR) archive."
    )
    parser.add_argument("input_xip", type=Path)
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory (default: the archive name, in the current directory)",
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=1, help="Number of entries to extract at once"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=CHUNK_SIZE,
        help="Bytes copied per read when extracting",
    )
    parser.add_argument(
        "--max-toc-size",
        type=int,
        default=MAX_TOC_SIZE,
        help="Largest table of contents accepted, compressed or not",
    )
    parser.add_argument(
        "--no-manifest",
        action="store_false",
        dest="manifest",
        help="Don't write a manifest of the extracted entries",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_debug_logging("DEBUG" if args.verbose else "INFO")

    try:
        config = ExtractConfig(
            max_toc_size=args.max_toc_size,
            chunk_size=args.chunk_size,
            manifest=args.manifest,
            jobs=args.jobs,
        )
    except ValidationError as e:
        LOG.error("Invalid options: %s", e)
        return 1

    output_dir = output_resolve(args.input_xip, args.output_dir)
    try:
        xip_to_dir(args.input_xip, output_dir, config, ProgressPrinter())
    except XarError as e:
        LOG.error("Invalid XIP file '%s': %s", args.input_xip, e)
        return 1
    except OSError as e:
        LOG.error("File '%s' can't be extracted: %s", args.input_xip, e)
        return 1
    return 0


def run() -> None:
    sys.exit(main())
