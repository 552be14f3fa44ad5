import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import pytest

from dap_client.config import AggregatorEndpoint, TaskConfig, VdafConfig
from dap_client.crypto import dh, hpke
from dap_client.crypto.hpke import KDF_HKDF_SHA256
from dap_client.crypto.aead import AEAD_AES_128_GCM
from dap_client.crypto.prg import SEED_SIZE, Prg
from dap_client.protocol import (
    HpkeConfig,
    HpkeConfigList,
    InputShareAad,
    PlaintextInputShare,
    ProtocolVersion,
    Report,
    Role,
    TaskId,
    input_share_info,
)
from dap_client.vdaf.prio3 import USAGE_MEAS_SHARE, Prio3, build_vdaf

ZERO_TASK_ID = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
LEADER_URL = "https://leader.example.com/"
HELPER_URL = "https://helper.example.com/"


@dataclass
class AggregatorKey:
    config: HpkeConfig
    private_key: Any


def make_aggregator_key(config_id: int, kem_id: int = dh.KEM_X25519_HKDF_SHA256, aead_id: int = AEAD_AES_128_GCM) -> AggregatorKey:
    private_key, public_key = dh.generate_keypair(kem_id)
    config = HpkeConfig(id=config_id, kem_id=kem_id, kdf_id=KDF_HKDF_SHA256, aead_id=aead_id, public_key=public_key)
    return AggregatorKey(config=config, private_key=private_key)


@pytest.fixture
def leader_key() -> AggregatorKey:
    return make_aggregator_key(1)


@pytest.fixture
def helper_key() -> AggregatorKey:
    return make_aggregator_key(2)


@pytest.fixture
def make_task(leader_key, helper_key):
    def _make(vdaf_type: str = "prio3_histogram", protocol_version: str = "dap-09", time_precision: int = 300, **params: int) -> TaskConfig:
        if vdaf_type == "prio3_histogram" and not params:
            params = {"length": 5, "chunk_length": 2}
        return TaskConfig(
            task_id=TaskId.parse(ZERO_TASK_ID),
            aggregators=(
                AggregatorEndpoint(Role.LEADER, LEADER_URL, leader_key.config),
                AggregatorEndpoint(Role.HELPER, HELPER_URL, helper_key.config),
            ),
            vdaf=VdafConfig.from_mapping({"type": vdaf_type, **params}),
            time_precision=time_precision,
            protocol_version=protocol_version,
        )

    return _make


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def task_dict(leader_key: AggregatorKey, helper_key: AggregatorKey) -> Dict[str, Any]:
    return {
        "task_id": ZERO_TASK_ID,
        "protocol_version": "dap-09",
        "time_precision": 300,
        "vdaf": {"type": "prio3_sum", "bits": 8},
        "aggregators": [
            {
                "role": "leader",
                "endpoint": LEADER_URL,
                "hpke_config_list": b64url(HpkeConfigList((leader_key.config,)).encode()),
            },
            {
                "role": "helper",
                "endpoint": HELPER_URL,
                "hpke_config": b64url(helper_key.config.encode()),
            },
        ],
    }


def open_input_shares(report: Report, task: TaskConfig, keys: List[AggregatorKey]) -> Tuple[bytes, bytes]:
    """Decrypt both input shares the way the aggregators would."""
    version = ProtocolVersion.parse(task.protocol_version)
    aad = InputShareAad(task.task_id, report.metadata, report.public_share).encode()
    payloads = []
    for ciphertext, aggregator, key in zip(report.encrypted_input_shares, task.aggregators, keys):
        plaintext = hpke.open_(key.config, key.private_key, input_share_info(version, aggregator.role), ciphertext, aad)
        payloads.append(PlaintextInputShare.decode(plaintext).payload)
    return payloads[0], payloads[1]


def reconstruct(vdaf: Prio3, leader_share: bytes, helper_share: bytes) -> List[int]:
    """Recombine the encoded measurement from the two input shares."""
    blind = SEED_SIZE if vdaf.uses_joint_rand else 0
    field = vdaf.field
    leader_vec = field.decode_vec(leader_share[: len(leader_share) - blind])
    helper_seed = helper_share[:SEED_SIZE]
    helper_vec = field.sample_vec(Prg(helper_seed, vdaf._dst(USAGE_MEAS_SHARE), binder=bytes([1])), len(leader_vec))
    return field.add(leader_vec, helper_vec)


def vdaf_for(task: TaskConfig) -> Prio3:
    return build_vdaf(task.vdaf.type, **dict(task.vdaf.parameters))
