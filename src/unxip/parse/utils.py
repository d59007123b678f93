from struct import Struct
from typing import Any, Tuple

# all multi-byte values in a XAR header are big-endian; the ">" prefix also
# guarantees standard sizes and no alignment padding
UINT16 = Struct(">H")
UINT32 = Struct(">I")
UINT64 = Struct(">Q")


class BinReader:
    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0
        self.prev = 0

    def __len__(self) -> int:
        return len(self.data)

    def read(self, struct: Struct) -> Tuple[Any, ...]:
        values = struct.unpack_from(self.data, self.offset)
        self.prev = self.offset
        self.offset += struct.size
        return values

    def read_u16(self) -> int:
        (value,) = self.read(UINT16)
        return value  # type: ignore

    def read_u32(self) -> int:
        (value,) = self.read(UINT32)
        return value  # type: ignore

    def read_u64(self) -> int:
        (value,) = self.read(UINT64)
        return value  # type: ignore

    def read_bytes(self, length: int) -> bytes:
        self.prev = self.offset
        self.offset += length
        value = self.data[self.prev : self.offset]
        return value
