from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

SEED_SIZE = 16


def _derive_key_iv(seed: bytes, dst: bytes, binder: bytes) -> tuple[bytes, bytes]:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=48,
        salt=dst,
        info=b"dap-client/prg" + binder,
    )
    material = hkdf.derive(bytes(seed))
    return material[:32], material[32:]


class Prg:
    """
    Deterministic byte stream keyed by (seed, dst, binder), based on AES-CTR.
    For a given key triple the stream is stable across calls and processes.
    """

    def __init__(self, seed: bytes, dst: bytes, binder: bytes = b"") -> None:
        if len(seed) != SEED_SIZE:
            raise ValueError(f"PRG seed must be {SEED_SIZE} bytes")
        key, iv = _derive_key_iv(seed, dst, binder)
        self._encryptor = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()

    def next(self, length: int) -> bytes:
        if length < 0:
            raise ValueError("length must be non-negative")
        if length == 0:
            return b""
        return self._encryptor.update(b"\x00" * length)


def prg_bytes(seed: bytes, length: int, dst: bytes = b"", binder: bytes = b"") -> bytes:
    """One-shot helper returning the first length bytes of the stream."""
    return Prg(seed, dst, binder).next(length)
