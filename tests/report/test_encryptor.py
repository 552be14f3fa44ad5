import pytest
from cryptography.exceptions import InvalidTag

from conftest import HELPER_URL, LEADER_URL, make_aggregator_key

from dap_client.config import AggregatorEndpoint
from dap_client.crypto import dh, hpke
from dap_client.errors import EncryptionFailed, InvalidMeasurement
from dap_client.protocol import (
    HpkeConfig,
    InputShareAad,
    PlaintextInputShare,
    ProtocolVersion,
    ReportId,
    ReportMetadata,
    Role,
    TaskId,
    input_share_info,
)
from dap_client.report import Encryptor, Sharder

AAD = InputShareAad(
    task_id=TaskId(b"\x00" * 32),
    metadata=ReportMetadata(ReportId(b"\x09" * 16), 1_700_000_000),
    public_share=b"public",
)


def test_encrypt_binds_role_and_report(leader_key) -> None:
    leader = AggregatorEndpoint(Role.LEADER, LEADER_URL, leader_key.config)
    ciphertext = Encryptor().encrypt(b"leader share", leader, AAD, ProtocolVersion.DAP_09)
    assert ciphertext.config_id == leader_key.config.id

    info = input_share_info(ProtocolVersion.DAP_09, Role.LEADER)
    plaintext = hpke.open_(leader_key.config, leader_key.private_key, info, ciphertext, AAD.encode())
    assert PlaintextInputShare.decode(plaintext).payload == b"leader share"

    helper_info = input_share_info(ProtocolVersion.DAP_09, Role.HELPER)
    with pytest.raises(InvalidTag):
        hpke.open_(leader_key.config, leader_key.private_key, helper_info, ciphertext, AAD.encode())

    other_report = InputShareAad(AAD.task_id, ReportMetadata(ReportId(b"\x08" * 16), AAD.metadata.time), AAD.public_share)
    with pytest.raises(InvalidTag):
        hpke.open_(leader_key.config, leader_key.private_key, info, ciphertext, other_report.encode())


def test_encrypt_supports_p256_aggregators() -> None:
    key = make_aggregator_key(5, kem_id=dh.KEM_P256_HKDF_SHA256)
    helper = AggregatorEndpoint(Role.HELPER, HELPER_URL, key.config)
    ciphertext = Encryptor().encrypt(b"helper share", helper, AAD, ProtocolVersion.DAP_07)
    info = input_share_info(ProtocolVersion.DAP_07, Role.HELPER)
    plaintext = hpke.open_(key.config, key.private_key, info, ciphertext, AAD.encode())
    assert PlaintextInputShare.decode(plaintext).payload == b"helper share"


def test_unsupported_suite_is_encryption_failure(leader_key) -> None:
    config = HpkeConfig(id=1, kem_id=0x0020, kdf_id=0x0001, aead_id=0xFFFF, public_key=leader_key.config.public_key)
    aggregator = AggregatorEndpoint(Role.LEADER, LEADER_URL, config)
    with pytest.raises(EncryptionFailed):
        Encryptor().encrypt(b"x", aggregator, AAD, ProtocolVersion.DAP_09)


def test_malformed_public_key_is_encryption_failure() -> None:
    config = HpkeConfig(id=1, kem_id=0x0020, kdf_id=0x0001, aead_id=0x0001, public_key=b"\x01\x02\x03")
    aggregator = AggregatorEndpoint(Role.LEADER, LEADER_URL, config)
    with pytest.raises(EncryptionFailed):
        Encryptor().encrypt(b"x", aggregator, AAD, ProtocolVersion.DAP_09)


def test_sharder_produces_one_share_per_aggregator(make_task) -> None:
    task = make_task()
    rand = b"\x33" * task.vdaf.build().rand_size
    sharded = Sharder().shard(4, task, ReportId(b"\x01" * 16), rand)
    assert len(sharded.input_shares) == len(task.aggregators)
    assert sharded == Sharder().shard(4, task, ReportId(b"\x01" * 16), rand)
    with pytest.raises(InvalidMeasurement):
        Sharder().shard(5, task, ReportId(b"\x01" * 16), rand)
