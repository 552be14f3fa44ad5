"""
Client orchestration: shard, encrypt, encode and upload one measurement.

Each submission walks BUILDING -> ENCRYPTING -> ENCODING -> SUBMITTING and ends in
ACCEPTED, REJECTED or EXHAUSTED. Only transient failures are retried, and every
retry rebuilds the report from scratch with a new report ID, new VDAF randomness,
a new timestamp and new HPKE encapsulations.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

from dap_client.config.models import (
    AggregatorEndpoint,
    ClientSettings,
    TaskConfig,
    VdafConfig,
    select_hpke_config,
)
from dap_client.errors import ReportRejected, RetriesExhausted
from dap_client.protocol.messages import (
    HpkeConfig,
    HpkeConfigList,
    InputShareAad,
    ProtocolVersion,
    Report,
    ReportId,
    Role,
    TaskId,
)
from dap_client.report.builder import ReportBuilder
from dap_client.report.encryptor import Encryptor
from dap_client.report.sharder import Sharder
from dap_client.transport.upload import Accepted, Rejected, TransientFailure, Transport, upload_url
from dap_client.utils.metrics import InMemoryMetrics, Timer
from dap_client.utils.retry import SecretScope, backoff_delay
from dap_client.vdaf import VdafType

logger = logging.getLogger(__name__)

HpkeConfigSource = Union[HpkeConfig, HpkeConfigList]


class SubmissionState(str, Enum):
    BUILDING = "building"
    ENCRYPTING = "encrypting"
    ENCODING = "encoding"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXHAUSTED = "exhausted"


@dataclass
class SubmissionResult:
    state: SubmissionState
    attempts: int
    report_ids: List[ReportId] = field(default_factory=list)
    rejection: Optional[Rejected] = None
    last_failure: Optional[TransientFailure] = None

    @property
    def accepted(self) -> bool:
        return self.state == SubmissionState.ACCEPTED


class Client:
    """
    Submits measurements for one task.

    The task config is read once at the start of each submission; replacing it with
    ``update_task_config`` only affects submissions that start afterwards.
    """

    def __init__(
        self,
        task_config: TaskConfig,
        settings: Optional[ClientSettings] = None,
        *,
        transport: Optional[Transport] = None,
        sharder: Optional[Sharder] = None,
        encryptor: Optional[Encryptor] = None,
        builder: Optional[ReportBuilder] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        metrics: Optional[InMemoryMetrics] = None,
    ) -> None:
        self._task_config = task_config
        self.settings = settings or ClientSettings()
        self._transport = transport
        self._sharder = sharder or Sharder()
        self._encryptor = encryptor or Encryptor()
        self._builder = builder or ReportBuilder()
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.SystemRandom()
        self.metrics = metrics or InMemoryMetrics()

    @property
    def task_config(self) -> TaskConfig:
        return self._task_config

    def update_task_config(self, task_config: TaskConfig) -> None:
        self._task_config = task_config

    def prepare_report(self, measurement: Any, task: Optional[TaskConfig] = None) -> Report:
        """Shard, encrypt and assemble one report. Secret intermediates are wiped on return."""
        task = task or self._task_config
        version = self._builder.protocol_version(task)
        with Timer(self.metrics, "report_build_seconds"), SecretScope() as scope:
            logger.debug(f"Submission stage: {SubmissionState.BUILDING.value}")
            report_id = self._builder.new_report_id()
            vdaf = self._sharder.vdaf_for(task)
            rand = scope.track(self._builder.random_bytes(self._sharder.rand_size(task, vdaf)))
            sharded = self._sharder.shard(measurement, task, report_id, rand, vdaf=vdaf)
            for share in sharded.input_shares:
                scope.track(share)

            logger.debug(f"Submission stage: {SubmissionState.ENCRYPTING.value}")
            metadata = self._builder.metadata(report_id, self._clock(), task)
            aad = InputShareAad(task_id=task.task_id, metadata=metadata, public_share=sharded.public_share)
            encrypted = [
                self._encryptor.encrypt(share, aggregator, aad, version)
                for share, aggregator in zip(sharded.input_shares, task.aggregators)
            ]
            return self._builder.build(report_id, metadata.time, task, sharded.public_share, encrypted)

    async def submit(self, measurement: Any) -> SubmissionResult:
        if self._transport is None:
            self._transport = Transport(self.settings.transport)
        return await self._submit(measurement, self._transport)

    async def _submit(self, measurement: Any, transport: Transport) -> SubmissionResult:
        task = self._task_config
        retry_config = self.settings.retry
        url = upload_url(task.leader.endpoint, task.task_id)
        report_ids: List[ReportId] = []
        last_failure: Optional[TransientFailure] = None
        logger.info(f"Submitting measurement for task {task.task_id} ({task.vdaf.type.value})")

        with SecretScope() as scope:
            held = [measurement]
            scope.register(held.clear)
            del measurement

            attempt = 0
            while attempt < retry_config.max_attempts:
                attempt += 1
                report = self.prepare_report(held[0], task)
                report_ids.append(report.report_id)

                logger.debug(f"Submission stage: {SubmissionState.ENCODING.value}")
                encoded = self._builder.encode(report)

                logger.debug(f"Submission stage: {SubmissionState.SUBMITTING.value}")
                logger.info(
                    f"Uploading report {report.report_id.hex()} for task {task.task_id} "
                    f"(attempt {attempt}/{retry_config.max_attempts})"
                )
                self.metrics.emit_counter("submission_attempts")
                outcome = await transport.submit(url, encoded)

                if isinstance(outcome, Accepted):
                    logger.info(f"Report {report.report_id.hex()} accepted (HTTP {outcome.status})")
                    self.metrics.emit_counter("submission_outcomes", outcome=SubmissionState.ACCEPTED.value)
                    return SubmissionResult(SubmissionState.ACCEPTED, attempt, report_ids)
                if isinstance(outcome, Rejected):
                    logger.warning(
                        f"Report {report.report_id.hex()} rejected: {outcome.reason} (HTTP {outcome.status})"
                    )
                    self.metrics.emit_counter("submission_outcomes", outcome=SubmissionState.REJECTED.value)
                    return SubmissionResult(SubmissionState.REJECTED, attempt, report_ids, rejection=outcome)

                last_failure = outcome
                logger.warning(f"Upload attempt {attempt} failed: {outcome.kind.value} {outcome.detail}")
                if attempt < retry_config.max_attempts:
                    delay = backoff_delay(attempt, retry_config, self._rng)
                    logger.info(f"Retrying in {delay:.2f}s")
                    await self._sleep(delay)

        logger.error(
            f"Giving up on measurement for task {task.task_id} after {attempt} attempts: "
            f"{last_failure.kind.value if last_failure else 'unknown'}"
        )
        self.metrics.emit_counter("submission_outcomes", outcome=SubmissionState.EXHAUSTED.value)
        return SubmissionResult(SubmissionState.EXHAUSTED, attempt, report_ids, last_failure=last_failure)

    def send_measurement(self, measurement: Any) -> SubmissionResult:
        """
        Blocking submission for callers without an event loop.
        Raises ReportRejected or RetriesExhausted unless the report is accepted.
        """
        return asyncio.run(self._send_blocking(measurement))

    async def _send_blocking(self, measurement: Any) -> SubmissionResult:
        if self._transport is not None:
            result = await self._submit(measurement, self._transport)
        else:
            # A client bound to this short-lived event loop.
            transport = Transport(self.settings.transport)
            try:
                result = await self._submit(measurement, transport)
            finally:
                await transport.aclose()
        if result.state == SubmissionState.REJECTED and result.rejection is not None:
            raise ReportRejected(result.rejection, result.attempts)
        if result.state == SubmissionState.EXHAUSTED:
            raise RetriesExhausted(result.last_failure, result.attempts)
        return result

    async def aclose(self) -> None:
        if self._transport is not None:
            await self._transport.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @classmethod
    def _create(
        cls,
        vdaf: VdafConfig,
        task_id: Union[TaskId, str],
        leader_endpoint: str,
        helper_endpoint: str,
        leader_hpke_config: HpkeConfigSource,
        helper_hpke_config: HpkeConfigSource,
        time_precision: int,
        protocol_version: str,
        **kwargs: Any,
    ) -> "Client":
        def _config(source: HpkeConfigSource) -> HpkeConfig:
            if isinstance(source, HpkeConfigList):
                return select_hpke_config(source)
            return source

        task = TaskConfig(
            task_id=task_id if isinstance(task_id, TaskId) else TaskId.parse(task_id),
            aggregators=(
                AggregatorEndpoint(Role.LEADER, leader_endpoint, _config(leader_hpke_config)),
                AggregatorEndpoint(Role.HELPER, helper_endpoint, _config(helper_hpke_config)),
            ),
            vdaf=vdaf,
            time_precision=time_precision,
            protocol_version=protocol_version,
        )
        return cls(task, **kwargs)

    @classmethod
    def prio3_count(
        cls,
        task_id: Union[TaskId, str],
        leader_endpoint: str,
        helper_endpoint: str,
        leader_hpke_config: HpkeConfigSource,
        helper_hpke_config: HpkeConfigSource,
        time_precision: int,
        protocol_version: str = ProtocolVersion.DAP_09.value,
        **kwargs: Any,
    ) -> "Client":
        return cls._create(
            VdafConfig(VdafType.PRIO3_COUNT),
            task_id, leader_endpoint, helper_endpoint, leader_hpke_config, helper_hpke_config,
            time_precision, protocol_version, **kwargs,
        )

    @classmethod
    def prio3_sum(
        cls,
        task_id: Union[TaskId, str],
        leader_endpoint: str,
        helper_endpoint: str,
        leader_hpke_config: HpkeConfigSource,
        helper_hpke_config: HpkeConfigSource,
        time_precision: int,
        bits: int,
        protocol_version: str = ProtocolVersion.DAP_09.value,
        **kwargs: Any,
    ) -> "Client":
        return cls._create(
            VdafConfig(VdafType.PRIO3_SUM, (("bits", bits),)),
            task_id, leader_endpoint, helper_endpoint, leader_hpke_config, helper_hpke_config,
            time_precision, protocol_version, **kwargs,
        )

    @classmethod
    def prio3_sum_vec(
        cls,
        task_id: Union[TaskId, str],
        leader_endpoint: str,
        helper_endpoint: str,
        leader_hpke_config: HpkeConfigSource,
        helper_hpke_config: HpkeConfigSource,
        time_precision: int,
        length: int,
        bits: int,
        chunk_length: int,
        protocol_version: str = ProtocolVersion.DAP_09.value,
        **kwargs: Any,
    ) -> "Client":
        params = (("bits", bits), ("chunk_length", chunk_length), ("length", length))
        return cls._create(
            VdafConfig(VdafType.PRIO3_SUM_VEC, params),
            task_id, leader_endpoint, helper_endpoint, leader_hpke_config, helper_hpke_config,
            time_precision, protocol_version, **kwargs,
        )

    @classmethod
    def prio3_histogram(
        cls,
        task_id: Union[TaskId, str],
        leader_endpoint: str,
        helper_endpoint: str,
        leader_hpke_config: HpkeConfigSource,
        helper_hpke_config: HpkeConfigSource,
        time_precision: int,
        length: int,
        chunk_length: int,
        protocol_version: str = ProtocolVersion.DAP_09.value,
        **kwargs: Any,
    ) -> "Client":
        params = (("chunk_length", chunk_length), ("length", length))
        return cls._create(
            VdafConfig(VdafType.PRIO3_HISTOGRAM, params),
            task_id, leader_endpoint, helper_endpoint, leader_hpke_config, helper_hpke_config,
            time_precision, protocol_version, **kwargs,
        )
