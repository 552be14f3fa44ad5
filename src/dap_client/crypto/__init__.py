from .aead import aead_open, aead_seal
from .dh import generate_keypair, load_public_key_bytes
from .hpke import Hpke, Rfc9180Hpke, is_suite_supported, open_, seal
from .prg import SEED_SIZE, Prg, prg_bytes

__all__ = [
    "aead_open",
    "aead_seal",
    "generate_keypair",
    "load_public_key_bytes",
    "Hpke",
    "Rfc9180Hpke",
    "is_suite_supported",
    "open_",
    "seal",
    "SEED_SIZE",
    "Prg",
    "prg_bytes",
]
