"""Read the fixed XAR header.

The header is 28 bytes on the wire, but ``header_size`` may declare a larger
region (vendor padding). The compressed table of contents always starts at
``header_size``.
"""
import logging
import os
from dataclasses import dataclass
from typing import BinaryIO

from ..errors import (
    InvalidHeaderSize,
    InvalidSignature,
    InvalidSizes,
    TruncatedHeader,
    assert_eq,
    assert_ge,
    assert_gt,
    assert_le,
)
from .utils import BinReader

SIGNATURE = b"xar!"
HEADER_SIZE = 28
MAX_TOC_SIZE = 65535

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class XarHeader:
    signature: bytes
    header_size: int
    format_version: int
    toc_size_compressed: int
    toc_size_uncompressed: int
    checksum_algorithm: int

    @property
    def heap_start(self) -> int:
        return self.header_size + self.toc_size_compressed


def read_header(data: bytes, max_toc_size: int = MAX_TOC_SIZE) -> XarHeader:
    reader = BinReader(data)

    signature = reader.read_bytes(len(SIGNATURE))
    assert_eq("signature", SIGNATURE, signature, reader.prev, InvalidSignature)
    assert_ge("header length", HEADER_SIZE, len(reader), 0, TruncatedHeader)

    header_size = reader.read_u16()
    format_version = reader.read_u16()
    toc_size_compressed = reader.read_u64()
    toc_offset = reader.prev
    toc_size_uncompressed = reader.read_u64()
    checksum_algorithm = reader.read_u32()

    LOG.debug(
        "Header size %d, version %d, checksum %d",
        header_size,
        format_version,
        checksum_algorithm,
    )
    LOG.debug(
        "TOC compressed %d, uncompressed %d",
        toc_size_compressed,
        toc_size_uncompressed,
    )

    assert_gt("TOC compressed size", 0, toc_size_compressed, toc_offset, InvalidSizes)
    assert_le(
        "TOC compressed size", max_toc_size, toc_size_compressed, toc_offset, InvalidSizes
    )
    assert_le(
        "TOC uncompressed size",
        max_toc_size,
        toc_size_uncompressed,
        toc_offset + 8,
        InvalidSizes,
    )
    assert_ge("header size", HEADER_SIZE, header_size, 4, InvalidHeaderSize)

    return XarHeader(
        signature,
        header_size,
        format_version,
        toc_size_compressed,
        toc_size_uncompressed,
        checksum_algorithm,
    )


def read_header_from(f: BinaryIO, max_toc_size: int = MAX_TOC_SIZE) -> XarHeader:
    """Read and validate the header, and leave the stream at ``header_size``.

    :raises InvalidSignature: If the magic does not match.
    :raises TruncatedHeader: If the stream ends inside the fixed header.
    :raises InvalidSizes: If the TOC sizes are out of bounds.
    :raises InvalidHeaderSize: If the header region is too small, or longer
        than the stream.
    """
    header = read_header(f.read(HEADER_SIZE), max_toc_size)

    end = f.seek(0, os.SEEK_END)
    assert_le("header size", end, header.header_size, 4, InvalidHeaderSize)
    f.seek(header.header_size, os.SEEK_SET)
    return header
