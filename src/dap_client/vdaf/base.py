from abc import ABC, abstractmethod
from enum import Enum
from typing import Generic, List, Tuple, TypeVar

M = TypeVar("M")


class VdafType(str, Enum):
    """Closed set of aggregation functions this client can shard for."""

    PRIO3_COUNT = "prio3_count"
    PRIO3_SUM = "prio3_sum"
    PRIO3_SUM_VEC = "prio3_sum_vec"
    PRIO3_HISTOGRAM = "prio3_histogram"


class Vdaf(ABC, Generic[M]):
    """
    Client side of a verifiable distributed aggregation function.

    ``shard`` splits one measurement into a public share and one input share per
    aggregator. It is a pure function of its arguments: the same measurement,
    nonce and randomness always give byte-identical output.
    """

    vdaf_type: VdafType
    shares: int = 2
    nonce_size: int = 16

    @property
    @abstractmethod
    def rand_size(self) -> int:
        """Number of random bytes consumed by one call to shard."""

    @abstractmethod
    def shard(self, measurement: M, nonce: bytes, rand: bytes) -> Tuple[bytes, List[bytearray]]:
        """Return (public_share, input_shares), input shares in aggregator order."""

