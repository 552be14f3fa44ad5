import pytest

from dap_client.errors import CodecError, IdGenerationFailed, UnsupportedVersion
from dap_client.protocol import HpkeCiphertext, Report, ReportId, TaskId
from dap_client.report import ReportBuilder, floor_time

HOUR = 1_700_002_800  # multiple of 3600


def _shares():
    return [HpkeCiphertext(1, b"\x01" * 32, b"leader"), HpkeCiphertext(2, b"\x02" * 32, b"helper")]


def test_floor_time_never_rounds_up() -> None:
    assert floor_time(HOUR + 125, 60) == HOUR + 120
    assert floor_time(HOUR + 179.9, 60) == HOUR + 120
    assert floor_time(HOUR, 60) == HOUR
    with pytest.raises(ValueError):
        floor_time(HOUR, 0)
    with pytest.raises(ValueError):
        floor_time(-1, 60)


def test_build_floors_time_and_round_trips(make_task) -> None:
    task = make_task(time_precision=60)
    builder = ReportBuilder()
    report_id = builder.new_report_id()
    report = builder.build(report_id, HOUR + 125, task, b"public", _shares())

    assert report.time == HOUR + 120
    decoded = ReportBuilder.decode(ReportBuilder.encode(report))
    assert decoded.task_id == task.task_id
    assert decoded.report_id == report_id
    assert decoded.time == HOUR + 120
    assert decoded.public_share == b"public"
    assert list(decoded.encrypted_input_shares) == _shares()


def test_build_requires_one_share_per_aggregator(make_task) -> None:
    builder = ReportBuilder()
    with pytest.raises(ValueError):
        builder.build(builder.new_report_id(), HOUR, make_task(), b"", _shares()[:1])


def test_unsupported_version_fails_at_build(make_task) -> None:
    task = make_task(protocol_version="dap-02")
    builder = ReportBuilder()
    with pytest.raises(UnsupportedVersion):
        builder.build(builder.new_report_id(), HOUR, task, b"", _shares())


def test_report_ids_are_fresh() -> None:
    builder = ReportBuilder()
    ids = {builder.new_report_id() for _ in range(64)}
    assert len(ids) == 64


def test_id_generation_fails_when_random_source_unavailable() -> None:
    def broken(_: int) -> bytes:
        raise OSError("no entropy")

    with pytest.raises(IdGenerationFailed):
        ReportBuilder(random_source=broken).new_report_id()


def test_id_generation_rejects_degenerate_output() -> None:
    with pytest.raises(IdGenerationFailed):
        ReportBuilder(random_source=lambda n: b"\x00" * n).new_report_id()
    with pytest.raises(IdGenerationFailed):
        ReportBuilder(random_source=lambda n: b"\x01" * (n - 1)).new_report_id()
    assert ReportBuilder(random_source=lambda n: b"\x01" * n).new_report_id() == ReportId(b"\x01" * 16)


def test_decode_against_task(make_task) -> None:
    task = make_task()
    builder = ReportBuilder()
    report = builder.build(builder.new_report_id(), HOUR, task, b"public", _shares())
    encoded = ReportBuilder.encode(report)
    assert ReportBuilder.decode(encoded, task) == report

    one_share = Report(task.task_id, report.metadata, b"public", tuple(_shares()[:1]))
    with pytest.raises(CodecError):
        ReportBuilder.decode(one_share.encode(), task)

    other_task = Report(TaskId(b"\x07" * 32), report.metadata, b"public", tuple(_shares()))
    with pytest.raises(CodecError):
        ReportBuilder.decode(other_task.encode(), task)
