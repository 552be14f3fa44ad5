"""Prime fields used by the Prio3 variants."""

from dataclasses import dataclass
from typing import List, Sequence

from dap_client.crypto.prg import Prg


@dataclass(frozen=True)
class Field:
    name: str
    modulus: int
    encoded_size: int

    @property
    def bits(self) -> int:
        return self.modulus.bit_length()

    def add(self, a: Sequence[int], b: Sequence[int]) -> List[int]:
        if len(a) != len(b):
            raise ValueError("Vector lengths must match")
        return [(x + y) % self.modulus for x, y in zip(a, b)]

    def sub(self, a: Sequence[int], b: Sequence[int]) -> List[int]:
        if len(a) != len(b):
            raise ValueError("Vector lengths must match")
        return [(x - y) % self.modulus for x, y in zip(a, b)]

    def encode_vec(self, vec: Sequence[int]) -> bytes:
        # Field elements are little-endian, unlike protocol integers.
        return b"".join(int(x).to_bytes(self.encoded_size, byteorder="little") for x in vec)

    def decode_vec(self, data: bytes) -> List[int]:
        if len(data) % self.encoded_size:
            raise ValueError(f"{self.name} vector length must be a multiple of {self.encoded_size}")
        vec = []
        for i in range(0, len(data), self.encoded_size):
            value = int.from_bytes(data[i : i + self.encoded_size], byteorder="little")
            if value >= self.modulus:
                raise ValueError(f"{self.name} element out of range")
            vec.append(value)
        return vec

    def sample_vec(self, prg: Prg, length: int) -> List[int]:
        """Draw uniform elements by rejection sampling from the PRG stream."""
        mask = (1 << self.bits) - 1
        vec: List[int] = []
        while len(vec) < length:
            candidate = int.from_bytes(prg.next(self.encoded_size), byteorder="little") & mask
            if candidate < self.modulus:
                vec.append(candidate)
        return vec


Field64 = Field(name="Field64", modulus=2**32 * 4294967295 + 1, encoded_size=8)
Field128 = Field(name="Field128", modulus=2**66 * 4611686018427387897 + 1, encoded_size=16)
