import json
from pathlib import Path

import pytest

from conftest import HELPER_URL, LEADER_URL, b64url, make_aggregator_key, task_dict

from dap_client.config import (
    AggregatorEndpoint,
    RetryConfig,
    TaskConfig,
    TransportConfig,
    VdafConfig,
    select_hpke_config,
)
from dap_client.errors import EncryptionFailed
from dap_client.protocol import HpkeConfig, HpkeConfigList, Role
from dap_client.vdaf import VdafType


def test_task_config_from_dict(leader_key, helper_key) -> None:
    task = TaskConfig.from_dict(task_dict(leader_key, helper_key))
    assert task.task_id.encode() == b"\x00" * 32
    assert task.leader.endpoint == LEADER_URL
    assert task.leader.hpke_config == leader_key.config
    assert task.aggregators[1].hpke_config == helper_key.config
    assert task.vdaf == VdafConfig(VdafType.PRIO3_SUM, (("bits", 8),))
    assert task.time_precision == 300
    assert task.protocol_version == "dap-09"


def test_task_config_from_file(tmp_path: Path, leader_key, helper_key) -> None:
    path = tmp_path / "task.json"
    path.write_text(json.dumps(task_dict(leader_key, helper_key)))
    assert TaskConfig.from_file(path) == TaskConfig.from_dict(task_dict(leader_key, helper_key))


def test_hpke_config_as_fields(leader_key, helper_key) -> None:
    data = task_dict(leader_key, helper_key)
    cfg = helper_key.config
    data["aggregators"][1]["hpke_config"] = {
        "id": cfg.id,
        "kem_id": cfg.kem_id,
        "kdf_id": cfg.kdf_id,
        "aead_id": cfg.aead_id,
        "public_key": b64url(cfg.public_key),
    }
    assert TaskConfig.from_dict(data).aggregators[1].hpke_config == cfg


def test_unknown_protocol_version_is_accepted_until_build(leader_key, helper_key) -> None:
    data = task_dict(leader_key, helper_key)
    data["protocol_version"] = "dap-05"
    assert TaskConfig.from_dict(data).protocol_version == "dap-05"


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.pop("task_id"),
        lambda d: d.update(task_id="too-short"),
        lambda d: d.update(time_precision=0),
        lambda d: d["aggregators"].reverse(),
        lambda d: d["aggregators"].pop(),
        lambda d: d["aggregators"][1].update(role="leader"),
        lambda d: d["aggregators"][1].update(role="collector"),
        lambda d: d["aggregators"][0].update(endpoint="ftp://leader.example.com/"),
        lambda d: d["aggregators"][1].pop("hpke_config"),
        lambda d: d["aggregators"][1].update(hpke_config="AAEC"),
        lambda d: d.update(vdaf={"type": "poplar1"}),
        lambda d: d.update(vdaf={"type": "prio3_sum"}),
        lambda d: d.update(vdaf={"type": "prio3_sum", "bits": 8, "length": 2}),
    ],
)
def test_task_config_validation_fails(mutate, leader_key, helper_key) -> None:
    data = task_dict(leader_key, helper_key)
    mutate(data)
    with pytest.raises(ValueError):
        TaskConfig.from_dict(data)


def test_select_hpke_config_skips_unsupported_suites() -> None:
    supported = make_aggregator_key(7).config
    unsupported = HpkeConfig(id=3, kem_id=0x0012, kdf_id=0x0001, aead_id=0x0001, public_key=b"\x04" * 133)
    assert select_hpke_config(HpkeConfigList((unsupported, supported))) == supported
    with pytest.raises(EncryptionFailed):
        select_hpke_config(HpkeConfigList((unsupported,)))
    with pytest.raises(EncryptionFailed):
        select_hpke_config(HpkeConfigList(()))


def test_aggregator_endpoint_requires_http_url(leader_key) -> None:
    endpoint = AggregatorEndpoint(Role.HELPER, HELPER_URL, leader_key.config)
    assert endpoint.role == Role.HELPER
    with pytest.raises(ValueError):
        AggregatorEndpoint(Role.HELPER, "helper.example.com", leader_key.config)
    with pytest.raises(ValueError):
        AggregatorEndpoint(Role.CLIENT, HELPER_URL, leader_key.config)


class TestRetryAndTransportConfig:
    def test_defaults(self) -> None:
        retry = RetryConfig.from_mapping(None)
        assert (retry.max_attempts, retry.base_delay, retry.max_delay, retry.multiplier) == (3, 0.5, 30.0, 2.0)
        assert retry.jitter.value == "full"
        transport = TransportConfig.from_mapping({})
        assert transport.transient_statuses == frozenset({408, 429})
        assert transport.user_agent.startswith("dap-client/")

    def test_overrides(self) -> None:
        retry = RetryConfig.from_mapping({"max_attempts": "4", "base_delay": 1, "jitter": "none"})
        assert retry.max_attempts == 4
        assert retry.base_delay == 1.0
        transport = TransportConfig.from_mapping({"request_timeout": 2.5, "upload_method": "put"})
        assert transport.request_timeout == 2.5
        assert transport.upload_method == "PUT"

    @pytest.mark.parametrize(
        "data",
        [
            {"max_attempts": 0},
            {"base_delay": -1},
            {"multiplier": 0.5},
            {"jitter": "decorrelated"},
            {"backoff": 1},
        ],
    )
    def test_invalid_retry(self, data) -> None:
        with pytest.raises(ValueError):
            RetryConfig.from_mapping(data)

    @pytest.mark.parametrize(
        "data",
        [
            {"request_timeout": 0},
            {"upload_method": "GET"},
            {"transient_statuses": [503]},
            {"proxy": "http://proxy"},
        ],
    )
    def test_invalid_transport(self, data) -> None:
        with pytest.raises(ValueError):
            TransportConfig.from_mapping(data)


def test_base64url_fields_reject_stray_characters(leader_key, helper_key) -> None:
    data = task_dict(leader_key, helper_key)
    encoded = data["aggregators"][1]["hpke_config"]
    data["aggregators"][1]["hpke_config"] = encoded[:8] + "." + encoded[8:]
    with pytest.raises(ValueError, match="base64url"):
        TaskConfig.from_dict(data)

    data = task_dict(leader_key, helper_key)
    data["task_id"] = data["task_id"].replace(data["task_id"][0], "/", 1)
    with pytest.raises(ValueError):
        TaskConfig.from_dict(data)
