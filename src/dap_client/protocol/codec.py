"""Big-endian TLS-style presentation-language codec helpers."""

from __future__ import annotations

from dap_client.errors import CodecError


def encode_uint(value: int, width: int) -> bytes:
    if value < 0 or value >= 1 << (8 * width):
        raise CodecError(f"value {value} does not fit in {width} byte(s)")
    return int(value).to_bytes(width, byteorder="big")


def encode_u8(value: int) -> bytes:
    return encode_uint(value, 1)


def encode_u16(value: int) -> bytes:
    return encode_uint(value, 2)


def encode_u32(value: int) -> bytes:
    return encode_uint(value, 4)


def encode_u64(value: int) -> bytes:
    return encode_uint(value, 8)


def encode_opaque(data: bytes, length_width: int) -> bytes:
    """Encode a variable-length byte string with a length prefix of length_width bytes."""
    return encode_uint(len(data), length_width) + bytes(data)


class Reader:
    """Cursor over an encoded message."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read_bytes(self, length: int) -> bytes:
        if length < 0 or length > self.remaining:
            raise CodecError(
                f"need {length} byte(s) at offset {self._offset}, only {self.remaining} left"
            )
        chunk = self._data[self._offset : self._offset + length].tobytes()
        self._offset += length
        return chunk

    def read_uint(self, width: int) -> int:
        return int.from_bytes(self.read_bytes(width), byteorder="big")

    def read_u8(self) -> int:
        return self.read_uint(1)

    def read_u16(self) -> int:
        return self.read_uint(2)

    def read_u32(self) -> int:
        return self.read_uint(4)

    def read_u64(self) -> int:
        return self.read_uint(8)

    def read_opaque(self, length_width: int) -> bytes:
        return self.read_bytes(self.read_uint(length_width))

    def finish(self) -> None:
        if self.remaining:
            raise CodecError(f"{self.remaining} trailing byte(s) after message")
