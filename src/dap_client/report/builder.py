"""Report assembly and the single place reports are serialized."""

import logging
import math
import secrets
from typing import Callable, Optional, Sequence

from dap_client.config.models import TaskConfig
from dap_client.errors import CodecError, IdGenerationFailed
from dap_client.protocol.messages import (
    REPORT_ID_LENGTH,
    HpkeCiphertext,
    ProtocolVersion,
    Report,
    ReportId,
    ReportMetadata,
)

logger = logging.getLogger(__name__)

RandomSource = Callable[[int], bytes]


def floor_time(timestamp: float, precision: int) -> int:
    """Round a UNIX timestamp down to a multiple of precision seconds."""
    if precision <= 0:
        raise ValueError("time precision must be positive")
    seconds = math.floor(timestamp)
    if seconds < 0:
        raise ValueError("timestamp must not precede the UNIX epoch")
    return seconds - seconds % precision


class ReportBuilder:
    def __init__(self, random_source: Optional[RandomSource] = None) -> None:
        self._random_source = random_source or secrets.token_bytes

    def random_bytes(self, length: int) -> bytearray:
        """
        Draw length bytes from the secure random source.
        Raises IdGenerationFailed if the source fails or returns a degenerate value.
        """
        try:
            data = self._random_source(length)
        except (OSError, NotImplementedError) as exc:
            raise IdGenerationFailed(f"secure random source unavailable: {exc}") from exc
        if data is None or len(data) != length:
            raise IdGenerationFailed(f"secure random source returned a short read (wanted {length})")
        if not any(data):
            raise IdGenerationFailed("secure random source returned all-zero bytes")
        return bytearray(data)

    def new_report_id(self) -> ReportId:
        return ReportId(bytes(self.random_bytes(REPORT_ID_LENGTH)))

    @staticmethod
    def protocol_version(task: TaskConfig) -> ProtocolVersion:
        return ProtocolVersion.parse(task.protocol_version)

    def metadata(self, report_id: ReportId, timestamp: float, task: TaskConfig) -> ReportMetadata:
        return ReportMetadata(report_id=report_id, time=floor_time(timestamp, task.time_precision))

    def build(
        self,
        report_id: ReportId,
        timestamp: float,
        task: TaskConfig,
        public_share: bytes,
        encrypted_shares: Sequence[HpkeCiphertext],
    ) -> Report:
        self.protocol_version(task)
        if len(encrypted_shares) != len(task.aggregators):
            raise ValueError(
                f"expected {len(task.aggregators)} encrypted shares, got {len(encrypted_shares)}"
            )
        report = Report(
            task_id=task.task_id,
            metadata=self.metadata(report_id, timestamp, task),
            public_share=bytes(public_share),
            encrypted_input_shares=tuple(encrypted_shares),
        )
        logger.debug(f"Built report {report_id.hex()} for task {task.task_id} at time {report.time}")
        return report

    @staticmethod
    def encode(report: Report) -> bytes:
        return report.encode()

    @staticmethod
    def decode(data: bytes, task: Optional[TaskConfig] = None) -> Report:
        """
        Parse an encoded report. With a task, the report must carry one share per
        aggregator and belong to that task. Raises CodecError for malformed input.
        """
        if task is None:
            return Report.decode(data)
        report = Report.decode(data, expected_shares=len(task.aggregators))
        if report.task_id != task.task_id:
            raise CodecError(f"report belongs to task {report.task_id}, not {task.task_id}")
        return report
