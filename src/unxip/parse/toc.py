"""Read the XAR table of contents.

The TOC is a zlib stream that inflates to an XML document::

    <xar>
      <toc>
        <file id="1">
          <data>
            <offset>0</offset>
            <length>355</length>
          </data>
          <name>Metadata</name>
        </file>
      </toc>
    </xar>

Only direct ``file`` children of ``toc`` are read. A ``file`` missing any of
``name``, ``data/offset`` or ``data/length`` is skipped. The ``data`` element
may also carry a ``size`` element, which is ignored.
"""
from __future__ import annotations

import logging
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, List, Optional
from xml.etree.ElementTree import Element, ParseError, fromstring

from typing_extensions import Protocol

from ..errors import DecompressionError, TocParseError, TruncatedToc, assert_eq
from .header import XarHeader

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class TocEntry:
    name: str
    offset: int
    size: int

    def absolute_offset(self, header: XarHeader) -> int:
        return header.header_size + header.toc_size_compressed + self.offset


def decompress_toc(data: bytes, size: int) -> bytes:
    """Inflate a zlib stream to exactly ``size`` bytes.

    :raises DecompressionError: If the stream is corrupt, incomplete, has
        trailing data, or does not inflate to exactly ``size`` bytes.
    """
    decompressor = zlib.decompressobj()
    try:
        # one byte over the declared size is enough to detect an overflow
        toc = decompressor.decompress(data, size + 1)
    except zlib.error as e:
        raise DecompressionError(f"TOC stream is invalid: {e}") from e

    assert_eq("TOC uncompressed size", size, len(toc), "TOC", DecompressionError)
    if not decompressor.eof:
        raise DecompressionError("TOC stream ended early")
    if decompressor.unused_data or decompressor.unconsumed_tail:
        raise DecompressionError("TOC stream has trailing data")
    return toc


def read_toc(f: BinaryIO, header: XarHeader) -> bytes:
    """Read the compressed TOC at the current stream position and inflate it."""
    LOG.debug("Reading TOC (%d bytes) at %d", header.toc_size_compressed, f.tell())
    data = f.read(header.toc_size_compressed)
    assert_eq(
        "TOC compressed size",
        header.toc_size_compressed,
        len(data),
        header.header_size,
        TruncatedToc,
    )
    return decompress_toc(data, header.toc_size_uncompressed)


class TocNode(Protocol):
    @property
    def tag(self) -> str:
        pass  # pragma: no cover

    @property
    def text(self) -> str:
        pass  # pragma: no cover

    def children(self) -> Iterable[TocNode]:
        pass  # pragma: no cover

    def find(self, tag: str) -> Optional[TocNode]:
        pass  # pragma: no cover


class ElementNode:
    """Adapt an ElementTree element to ``TocNode``."""

    def __init__(self, element: Element):
        self._element = element

    @property
    def tag(self) -> str:
        return self._element.tag

    @property
    def text(self) -> str:
        return self._element.text or ""

    def children(self) -> Iterator[ElementNode]:
        return (ElementNode(child) for child in self._element)

    def find(self, tag: str) -> Optional[ElementNode]:
        # a plain tag is only matched against direct children
        child = self._element.find(tag)
        if child is None:
            return None
        return ElementNode(child)


def _child_text(node: TocNode, tag: str) -> Optional[str]:
    child = node.find(tag)
    if child is None:
        return None
    # an empty element is as good as a missing one
    if not child.text:
        return None
    return child.text


def _parse_uint(text: str) -> Optional[int]:
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def read_file_node(node: TocNode) -> Optional[TocEntry]:
    name = _child_text(node, "name")
    if name is None:
        LOG.debug("File without a name, skipping")
        return None

    data = node.find("data")
    if data is None:
        LOG.debug("File '%s' without data, skipping", name)
        return None

    offset_text = _child_text(data, "offset")
    length_text = _child_text(data, "length")
    if offset_text is None or length_text is None:
        LOG.debug("File '%s' without offset or length, skipping", name)
        return None

    offset = _parse_uint(offset_text)
    size = _parse_uint(length_text)
    if offset is None or size is None:
        LOG.debug(
            "File '%s' has invalid offset %r or length %r, skipping",
            name,
            offset_text,
            length_text,
        )
        return None

    return TocEntry(name, offset, size)


def entries_from_root(root: TocNode) -> List[TocEntry]:
    toc = root.find("toc")
    if toc is None:
        raise TocParseError(f"TOC element not found under '{root.tag}'")

    entries = []
    for node in toc.children():
        if node.tag != "file":
            continue
        entry = read_file_node(node)
        if entry is not None:
            LOG.debug(
                "Entry '%s', data at %d (%d bytes)", entry.name, entry.offset, entry.size
            )
            entries.append(entry)
    return entries


def parse_toc(data: bytes) -> List[TocEntry]:
    """Parse the inflated TOC into entries.

    :raises TocParseError: If the document is not well-formed, or has no
        ``toc`` element.
    """
    try:
        root = fromstring(data)
    except ParseError as e:
        raise TocParseError(f"TOC document is invalid: {e}") from e

    entries = entries_from_root(ElementNode(root))
    LOG.debug("Read %d TOC entries", len(entries))
    return entries
