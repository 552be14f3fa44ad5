"""
HPKE (RFC 9180) base mode, single-shot seal and open.

Built from the KEM groups in ``dh``, HKDF from ``cryptography`` and the AEADs in
``aead``. Only the algorithm identifiers listed in those modules are supported.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from dap_client.crypto import aead, dh
from dap_client.protocol.messages import HpkeCiphertext, HpkeConfig

KDF_HKDF_SHA256 = 0x0001
KDF_HKDF_SHA384 = 0x0002
KDF_HKDF_SHA512 = 0x0003

_KDF_HASHES: Dict[int, type] = {
    KDF_HKDF_SHA256: hashes.SHA256,
    KDF_HKDF_SHA384: hashes.SHA384,
    KDF_HKDF_SHA512: hashes.SHA512,
}

MODE_BASE = 0x00
_VERSION_LABEL = b"HPKE-v1"


def _i2osp(value: int, length: int) -> bytes:
    return int(value).to_bytes(length, byteorder="big")


def is_suite_supported(config: HpkeConfig) -> bool:
    return (
        dh.is_kem_supported(config.kem_id)
        and config.kdf_id in _KDF_HASHES
        and aead.is_aead_supported(config.aead_id)
    )


@dataclass(frozen=True)
class _Kdf:
    hash_cls: type
    suite_id: bytes

    @property
    def digest_size(self) -> int:
        return self.hash_cls.digest_size

    def labeled_extract(self, salt: bytes, label: bytes, ikm: bytes) -> bytes:
        h = hmac.HMAC(salt or b"\x00" * self.digest_size, self.hash_cls())
        h.update(_VERSION_LABEL + self.suite_id + label + ikm)
        return h.finalize()

    def labeled_expand(self, prk: bytes, label: bytes, info: bytes, length: int) -> bytes:
        labeled_info = _i2osp(length, 2) + _VERSION_LABEL + self.suite_id + label + info
        return HKDFExpand(algorithm=self.hash_cls(), length=length, info=labeled_info).derive(prk)


def _kem_kdf(kem_id: int) -> _Kdf:
    # Both supported KEMs use HKDF-SHA256 internally.
    return _Kdf(hash_cls=hashes.SHA256, suite_id=b"KEM" + _i2osp(kem_id, 2))


def _suite_kdf(config: HpkeConfig) -> _Kdf:
    suite_id = b"HPKE" + _i2osp(config.kem_id, 2) + _i2osp(config.kdf_id, 2) + _i2osp(config.aead_id, 2)
    return _Kdf(hash_cls=_KDF_HASHES[config.kdf_id], suite_id=suite_id)


def _extract_and_expand(kem_id: int, dh_output: bytes, kem_context: bytes) -> bytes:
    kdf = _kem_kdf(kem_id)
    eae_prk = kdf.labeled_extract(b"", b"eae_prk", dh_output)
    return kdf.labeled_expand(eae_prk, b"shared_secret", kem_context, dh.kem_params(kem_id).secret_length)


def _key_schedule(config: HpkeConfig, shared_secret: bytes, info: bytes) -> tuple[bytes, bytes]:
    kdf = _suite_kdf(config)
    psk_id_hash = kdf.labeled_extract(b"", b"psk_id_hash", b"")
    info_hash = kdf.labeled_extract(b"", b"info_hash", info)
    context = _i2osp(MODE_BASE, 1) + psk_id_hash + info_hash
    secret = kdf.labeled_extract(shared_secret, b"secret", b"")
    key = kdf.labeled_expand(secret, b"key", context, aead.aead_key_length(config.aead_id))
    base_nonce = kdf.labeled_expand(secret, b"base_nonce", context, aead.NONCE_LENGTH)
    return key, base_nonce


def _check_suite(config: HpkeConfig) -> None:
    if not is_suite_supported(config):
        raise ValueError(
            f"Unsupported HPKE suite kem=0x{config.kem_id:04x} "
            f"kdf=0x{config.kdf_id:04x} aead=0x{config.aead_id:04x}"
        )


def seal(
    config: HpkeConfig,
    info: bytes,
    plaintext: bytes,
    aad: bytes,
    ephemeral_key: Optional[dh.PrivateKey] = None,
) -> HpkeCiphertext:
    """
    Encrypt plaintext to the config's public key with a fresh ephemeral key.
    ``ephemeral_key`` pins the sender key for known-answer checks only.
    Raises ValueError for unsupported suites or malformed public keys.
    """
    _check_suite(config)
    if ephemeral_key is None:
        ephemeral, enc = dh.generate_keypair(config.kem_id)
    else:
        ephemeral = ephemeral_key
        enc = dh.serialize_public_key(config.kem_id, ephemeral_key.public_key())
    dh_output = dh.exchange(config.kem_id, ephemeral, config.public_key)
    shared_secret = _extract_and_expand(config.kem_id, dh_output, enc + config.public_key)
    key, base_nonce = _key_schedule(config, shared_secret, info)
    # Single-shot: sequence number 0, so the nonce is the base nonce.
    payload = aead.aead_seal(config.aead_id, key, base_nonce, plaintext, aad)
    return HpkeCiphertext(config_id=config.id, enc=enc, payload=payload)


def open_(config: HpkeConfig, private_key: dh.PrivateKey, info: bytes, ciphertext: HpkeCiphertext, aad: bytes) -> bytes:
    """Decrypt a ciphertext produced by ``seal`` with the recipient's private key."""
    _check_suite(config)
    if ciphertext.config_id != config.id:
        raise ValueError(f"Ciphertext was sealed to config {ciphertext.config_id}, not {config.id}")
    dh_output = dh.exchange(config.kem_id, private_key, ciphertext.enc)
    shared_secret = _extract_and_expand(config.kem_id, dh_output, ciphertext.enc + config.public_key)
    key, base_nonce = _key_schedule(config, shared_secret, info)
    return aead.aead_open(config.aead_id, key, base_nonce, ciphertext.payload, aad)


class Hpke(ABC):
    """Hybrid encryption capability used to protect input shares."""

    @abstractmethod
    def is_supported(self, config: HpkeConfig) -> bool:
        """Whether this implementation can seal to the config's algorithm suite."""

    @abstractmethod
    def seal(self, config: HpkeConfig, info: bytes, plaintext: bytes, aad: bytes) -> HpkeCiphertext:
        """Seal plaintext to config; must use fresh randomness on every call."""


class Rfc9180Hpke(Hpke):
    def is_supported(self, config: HpkeConfig) -> bool:
        return is_suite_supported(config)

    def seal(self, config: HpkeConfig, info: bytes, plaintext: bytes, aad: bytes) -> HpkeCiphertext:
        return seal(config, info, plaintext, aad)
