#!/usr/bin/env python3
"""Generate HPKE key pairs for local test aggregators and print their config lists."""

import argparse
from pathlib import Path

from cryptography.hazmat.primitives import serialization

from dap_client.crypto import dh
from dap_client.crypto.aead import AEAD_AES_128_GCM, AEAD_AES_256_GCM, AEAD_CHACHA20_POLY1305
from dap_client.crypto.hpke import KDF_HKDF_SHA256
from dap_client.protocol import HpkeConfig, HpkeConfigList, b64url_encode

KEMS = {"x25519": dh.KEM_X25519_HKDF_SHA256, "p256": dh.KEM_P256_HKDF_SHA256}
AEADS = {"aes128gcm": AEAD_AES_128_GCM, "aes256gcm": AEAD_AES_256_GCM, "chacha20poly1305": AEAD_CHACHA20_POLY1305}


def generate_keypair(identity: str, config_id: int, kem_id: int, aead_id: int, output_dir: Path) -> HpkeConfig:
    """Generate one HPKE key pair and write the private key as PKCS8 PEM."""
    private_key, public_key = dh.generate_keypair(kem_id)
    config = HpkeConfig(id=config_id, kem_id=kem_id, kdf_id=KDF_HKDF_SHA256, aead_id=aead_id, public_key=public_key)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    sk_path = output_dir / f"{identity}_hpke_sk.pem"
    sk_path.write_bytes(private_pem)

    encoded = b64url_encode(HpkeConfigList((config,)).encode())
    print(f"Generated HPKE config {config_id} for {identity}:")
    print(f"  Private key:      {sk_path}")
    print(f"  hpke_config_list: {encoded}")
    return config


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate HPKE key pairs for test aggregators")
    parser.add_argument(
        "--identities",
        nargs="+",
        default=["leader", "helper"],
        help="Aggregator names to generate keys for (default: leader helper)",
    )
    parser.add_argument("--kem", choices=sorted(KEMS), default="x25519", help="KEM to use (default: x25519)")
    parser.add_argument("--aead", choices=sorted(AEADS), default="aes128gcm", help="AEAD to use (default: aes128gcm)")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("config/keys"),
        help="Output directory for private keys (default: config/keys)",
    )
    args = parser.parse_args()

    args.output_dir.mkdir(parents=True, exist_ok=True)

    # Config IDs start at 1.
    for i, identity in enumerate(args.identities, start=1):
        generate_keypair(identity, i, KEMS[args.kem], AEADS[args.aead], args.output_dir)

    print(f"\nGenerated {len(args.identities)} key pairs in {args.output_dir}")


if __name__ == "__main__":
    main()
