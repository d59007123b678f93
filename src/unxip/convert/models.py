from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from ..parse.header import MAX_TOC_SIZE, XarHeader
from ..parse.payload import CHUNK_SIZE, ExtractResult

MANIFEST_SUFFIX = ".manifest.json"
TOC_FILENAME = "xip_toc.xml"


class ExtractConfig(BaseModel):
    max_toc_size: int = Field(MAX_TOC_SIZE, ge=1)
    chunk_size: int = Field(CHUNK_SIZE, ge=1)
    toc_filename: str = Field(TOC_FILENAME, min_length=1)
    manifest: bool = True
    jobs: int = Field(1, ge=1)


class HeaderInfo(BaseModel):
    header_size: int
    format_version: int
    toc_size_compressed: int
    toc_size_uncompressed: int
    checksum_algorithm: int

    @classmethod
    def from_header(cls, header: XarHeader) -> HeaderInfo:
        return cls(
            header_size=header.header_size,
            format_version=header.format_version,
            toc_size_compressed=header.toc_size_compressed,
            toc_size_uncompressed=header.toc_size_uncompressed,
            checksum_algorithm=header.checksum_algorithm,
        )


class EntryInfo(BaseModel):
    name: str
    offset: int
    absolute_offset: int
    size: int
    written: int = 0
    extracted: bool = False

    @classmethod
    def from_result(cls, result: ExtractResult, header: XarHeader) -> EntryInfo:
        entry = result.entry
        return cls(
            name=entry.name,
            offset=entry.offset,
            absolute_offset=entry.absolute_offset(header),
            size=entry.size,
            written=result.written,
            extracted=result.success,
        )


class XipManifest(BaseModel):
    header: HeaderInfo
    entries: List[EntryInfo] = []

    @property
    def failed(self) -> List[EntryInfo]:
        return [info for info in self.entries if not info.extracted]
