from typing import Dict, Tuple, Type, Union

from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

AEAD_AES_128_GCM = 0x0001
AEAD_AES_256_GCM = 0x0002
AEAD_CHACHA20_POLY1305 = 0x0003

NONCE_LENGTH = 12

# aead_id -> (cipher, key length)
_AEADS: Dict[int, Tuple[Type[Union[AESGCM, ChaCha20Poly1305]], int]] = {
    AEAD_AES_128_GCM: (AESGCM, 16),
    AEAD_AES_256_GCM: (AESGCM, 32),
    AEAD_CHACHA20_POLY1305: (ChaCha20Poly1305, 32),
}


def is_aead_supported(aead_id: int) -> bool:
    return aead_id in _AEADS


def aead_key_length(aead_id: int) -> int:
    if aead_id not in _AEADS:
        raise ValueError(f"Unsupported AEAD id 0x{aead_id:04x}")
    return _AEADS[aead_id][1]


def _cipher(aead_id: int, key: bytes) -> Union[AESGCM, ChaCha20Poly1305]:
    cls, key_length = _AEADS.get(aead_id, (None, 0))
    if cls is None:
        raise ValueError(f"Unsupported AEAD id 0x{aead_id:04x}")
    if len(key) != key_length:
        raise ValueError(f"AEAD 0x{aead_id:04x} key must be {key_length * 8} bits")
    return cls(key)


def aead_seal(aead_id: int, key: bytes, nonce: bytes, plaintext: bytes, aad: bytes | None = None) -> bytes:
    """Encrypt and authenticate; the tag is appended to the returned ciphertext."""
    if len(nonce) != NONCE_LENGTH:
        raise ValueError(f"AEAD nonce must be {NONCE_LENGTH} bytes")
    return _cipher(aead_id, key).encrypt(nonce, plaintext, aad or b"")


def aead_open(aead_id: int, key: bytes, nonce: bytes, ciphertext: bytes, aad: bytes | None = None) -> bytes:
    if len(nonce) != NONCE_LENGTH:
        raise ValueError(f"AEAD nonce must be {NONCE_LENGTH} bytes")
    return _cipher(aead_id, key).decrypt(nonce, ciphertext, aad or b"")
