"""
Prio3 report sharding for the count, sum, sum-vector and histogram variants.

The encoded measurement is split additively over the variant's field. The helper's
share is compressed to a PRG seed; the leader's share is sent in full. Variants that
use joint randomness also emit one joint-randomness part per aggregator as the
public share, each bound to the aggregator index, the nonce and that aggregator's
measurement share. Validity proofs are produced by the aggregation backend and are
not derived here.
"""

from __future__ import annotations

import numbers
from typing import Any, Callable, Dict, List, Sequence, Tuple

from dap_client.crypto.prg import SEED_SIZE, Prg
from dap_client.errors import InvalidMeasurement
from dap_client.vdaf.base import Vdaf, VdafType
from dap_client.vdaf.field import Field, Field64, Field128

USAGE_MEAS_SHARE = 1
USAGE_JOINT_RAND_PART = 2

_DST_PREFIX = b"dap-client/prio3"


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _bit_decompose(value: int, bits: int) -> List[int]:
    return [(value >> i) & 1 for i in range(bits)]


class Prio3(Vdaf):
    algorithm_id: int
    field: Field
    uses_joint_rand: bool = True

    @property
    def rand_size(self) -> int:
        # helper share seed, plus one blind per aggregator when joint randomness is used
        return SEED_SIZE * (1 + (self.shares if self.uses_joint_rand else 0))

    def _dst(self, usage: int) -> bytes:
        return _DST_PREFIX + self.algorithm_id.to_bytes(4, "big") + usage.to_bytes(2, "big")

    def encode(self, measurement: Any) -> List[int]:
        raise NotImplementedError

    def shard(self, measurement: Any, nonce: bytes, rand: bytes) -> Tuple[bytes, List[bytearray]]:
        if len(nonce) != self.nonce_size:
            raise ValueError(f"nonce must be {self.nonce_size} bytes")
        if len(rand) != self.rand_size:
            raise ValueError(f"rand must be {self.rand_size} bytes")
        encoded = self.encode(measurement)

        helper_seed = bytes(rand[:SEED_SIZE])
        helper_meas = self.field.sample_vec(
            Prg(helper_seed, self._dst(USAGE_MEAS_SHARE), binder=bytes([1])), len(encoded)
        )
        leader_meas = self.field.sub(encoded, helper_meas)

        leader_share = bytearray(self.field.encode_vec(leader_meas))
        helper_share = bytearray(helper_seed)
        public_share = b""
        if self.uses_joint_rand:
            leader_blind = bytes(rand[SEED_SIZE : 2 * SEED_SIZE])
            helper_blind = bytes(rand[2 * SEED_SIZE : 3 * SEED_SIZE])
            public_share = self._joint_rand_part(0, leader_blind, nonce, leader_share) + self._joint_rand_part(
                1, helper_blind, nonce, self.field.encode_vec(helper_meas)
            )
            leader_share += leader_blind
            helper_share += helper_blind

        encoded[:] = [0] * len(encoded)
        return public_share, [leader_share, helper_share]

    def _joint_rand_part(self, agg_id: int, blind: bytes, nonce: bytes, encoded_meas_share: bytes) -> bytes:
        binder = bytes([agg_id]) + bytes(nonce) + bytes(encoded_meas_share)
        return Prg(blind, self._dst(USAGE_JOINT_RAND_PART), binder=binder).next(SEED_SIZE)


class Prio3Count(Prio3):
    vdaf_type = VdafType.PRIO3_COUNT
    algorithm_id = 0x00000000
    field = Field64
    uses_joint_rand = False

    def encode(self, measurement: Any) -> List[int]:
        if isinstance(measurement, bool):
            return [int(measurement)]
        if _is_integer(measurement) and measurement in (0, 1):
            return [int(measurement)]
        raise InvalidMeasurement("Prio3Count measurement must be a boolean")


class Prio3Sum(Prio3):
    vdaf_type = VdafType.PRIO3_SUM
    algorithm_id = 0x00000001
    field = Field128

    def __init__(self, bits: int) -> None:
        if bits <= 0 or bits >= self.field.bits:
            raise ValueError(f"Prio3Sum bits must satisfy 0 < bits < {self.field.bits}")
        self.bits = bits

    def encode(self, measurement: Any) -> List[int]:
        if not _is_integer(measurement):
            raise InvalidMeasurement("Prio3Sum measurement must be an integer")
        if measurement < 0 or measurement >= 1 << self.bits:
            raise InvalidMeasurement(f"Prio3Sum measurement must be in [0, 2^{self.bits})")
        return _bit_decompose(int(measurement), self.bits)


class Prio3SumVec(Prio3):
    vdaf_type = VdafType.PRIO3_SUM_VEC
    algorithm_id = 0x00000002
    field = Field128

    def __init__(self, length: int, bits: int, chunk_length: int) -> None:
        if length <= 0:
            raise ValueError("Prio3SumVec length must be positive")
        if bits <= 0 or bits >= self.field.bits:
            raise ValueError(f"Prio3SumVec bits must satisfy 0 < bits < {self.field.bits}")
        if chunk_length <= 0:
            raise ValueError("Prio3SumVec chunk_length must be positive")
        self.length = length
        self.bits = bits
        self.chunk_length = chunk_length

    def encode(self, measurement: Any) -> List[int]:
        if isinstance(measurement, (str, bytes)) or not isinstance(measurement, Sequence):
            raise InvalidMeasurement("Prio3SumVec measurement must be a sequence of integers")
        if len(measurement) != self.length:
            raise InvalidMeasurement(
                f"Prio3SumVec measurement must have {self.length} entries, got {len(measurement)}"
            )
        encoded: List[int] = []
        bound = 1 << self.bits
        for index, value in enumerate(measurement):
            if not _is_integer(value) or value < 0 or value >= bound:
                raise InvalidMeasurement(
                    f"Prio3SumVec entry {index} must be an integer in [0, 2^{self.bits})"
                )
            encoded.extend(_bit_decompose(int(value), self.bits))
        return encoded


class Prio3Histogram(Prio3):
    vdaf_type = VdafType.PRIO3_HISTOGRAM
    algorithm_id = 0x00000003
    field = Field128

    def __init__(self, length: int, chunk_length: int) -> None:
        if length <= 0:
            raise ValueError("Prio3Histogram length must be positive")
        if chunk_length <= 0:
            raise ValueError("Prio3Histogram chunk_length must be positive")
        self.length = length
        self.chunk_length = chunk_length

    def encode(self, measurement: Any) -> List[int]:
        if not _is_integer(measurement):
            raise InvalidMeasurement("Prio3Histogram measurement must be a bucket index")
        if measurement < 0 or measurement >= self.length:
            raise InvalidMeasurement(f"Prio3Histogram bucket index must be in [0, {self.length})")
        encoded = [0] * self.length
        encoded[int(measurement)] = 1
        return encoded


_FACTORIES: Dict[VdafType, Callable[..., Prio3]] = {
    VdafType.PRIO3_COUNT: Prio3Count,
    VdafType.PRIO3_SUM: Prio3Sum,
    VdafType.PRIO3_SUM_VEC: Prio3SumVec,
    VdafType.PRIO3_HISTOGRAM: Prio3Histogram,
}


def build_vdaf(vdaf_type: VdafType, **params: int) -> Prio3:
    """Instantiate the variant for vdaf_type. Unknown parameters are a TypeError."""
    return _FACTORIES[VdafType(vdaf_type)](**params)
