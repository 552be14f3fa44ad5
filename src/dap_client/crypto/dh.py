"""Diffie-Hellman groups backing the supported HPKE KEMs."""

from dataclasses import dataclass
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, x25519

KEM_P256_HKDF_SHA256 = 0x0010
KEM_X25519_HKDF_SHA256 = 0x0020

PrivateKey = Union[ec.EllipticCurvePrivateKey, x25519.X25519PrivateKey]
PublicKey = Union[ec.EllipticCurvePublicKey, x25519.X25519PublicKey]


@dataclass(frozen=True)
class KemParams:
    kem_id: int
    secret_length: int
    enc_length: int


_KEMS = {
    KEM_P256_HKDF_SHA256: KemParams(KEM_P256_HKDF_SHA256, secret_length=32, enc_length=65),
    KEM_X25519_HKDF_SHA256: KemParams(KEM_X25519_HKDF_SHA256, secret_length=32, enc_length=32),
}


def is_kem_supported(kem_id: int) -> bool:
    return kem_id in _KEMS


def kem_params(kem_id: int) -> KemParams:
    if kem_id not in _KEMS:
        raise ValueError(f"Unsupported KEM id 0x{kem_id:04x}")
    return _KEMS[kem_id]


def generate_keypair(kem_id: int) -> tuple[PrivateKey, bytes]:
    """
    Generate a keypair for the KEM's group. Returns (private_key, public_bytes).
    P-256 public bytes are uncompressed X9.62 points; X25519 public bytes are raw.
    """
    kem_params(kem_id)
    if kem_id == KEM_P256_HKDF_SHA256:
        private_key: PrivateKey = ec.generate_private_key(ec.SECP256R1())
    else:
        private_key = x25519.X25519PrivateKey.generate()
    return private_key, serialize_public_key(kem_id, private_key.public_key())


def serialize_public_key(kem_id: int, public_key: PublicKey) -> bytes:
    if kem_id == KEM_P256_HKDF_SHA256:
        return public_key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def load_public_key_bytes(kem_id: int, data: bytes) -> PublicKey:
    kem_params(kem_id)
    if kem_id == KEM_P256_HKDF_SHA256:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), data)
    return x25519.X25519PublicKey.from_public_bytes(data)


def exchange(kem_id: int, private_key: PrivateKey, peer_public_bytes: bytes) -> bytes:
    """Raw DH output; for P-256 this is the x-coordinate of the shared point."""
    peer = load_public_key_bytes(kem_id, peer_public_bytes)
    if kem_id == KEM_P256_HKDF_SHA256:
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise ValueError("Invalid private key type for P-256 KEM")
        return private_key.exchange(ec.ECDH(), peer)
    if not isinstance(private_key, x25519.X25519PrivateKey):
        raise ValueError("Invalid private key type for X25519 KEM")
    return private_key.exchange(peer)
