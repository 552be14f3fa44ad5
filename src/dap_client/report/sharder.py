from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from dap_client.config.models import TaskConfig, VdafConfig
from dap_client.protocol.messages import ReportId
from dap_client.vdaf import Vdaf

VdafFactory = Callable[[VdafConfig], Vdaf]


@dataclass
class ShardedMeasurement:
    public_share: bytes
    input_shares: List[bytearray]


class Sharder:
    """
    Splits a measurement into one input share per aggregator using the task's VDAF.

    The VDAF backend comes from ``vdaf_factory``; the default builds the in-package
    Prio3 variants from the task's VDAF config.
    """

    def __init__(self, vdaf_factory: Optional[VdafFactory] = None) -> None:
        self._vdaf_factory = vdaf_factory or VdafConfig.build

    def vdaf_for(self, task: TaskConfig) -> Vdaf:
        return self._vdaf_factory(task.vdaf)

    def rand_size(self, task: TaskConfig, vdaf: Optional[Vdaf] = None) -> int:
        """Random bytes the backend consumes for one report of this task."""
        return (vdaf or self.vdaf_for(task)).rand_size

    def shard(
        self,
        measurement: Any,
        task: TaskConfig,
        report_id: ReportId,
        rand: bytes,
        vdaf: Optional[Vdaf] = None,
    ) -> ShardedMeasurement:
        """
        Raises InvalidMeasurement if the value is outside the VDAF's domain.
        rand must be fresh for every report; it is never reused by this class.
        """
        vdaf = vdaf or self.vdaf_for(task)
        if len(rand) != vdaf.rand_size:
            raise ValueError(f"{vdaf.vdaf_type.value} needs {vdaf.rand_size} random bytes, got {len(rand)}")
        public_share, input_shares = vdaf.shard(measurement, report_id.encode(), rand)
        if len(input_shares) != len(task.aggregators):
            raise RuntimeError(
                f"{vdaf.vdaf_type.value} produced {len(input_shares)} shares "
                f"for {len(task.aggregators)} aggregators"
            )
        return ShardedMeasurement(public_share=public_share, input_shares=input_shares)
