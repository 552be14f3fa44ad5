import logging
from typing import Optional

from dap_client.config.models import AggregatorEndpoint
from dap_client.crypto.hpke import Hpke, Rfc9180Hpke
from dap_client.errors import EncryptionFailed
from dap_client.protocol.messages import (
    HpkeCiphertext,
    InputShareAad,
    PlaintextInputShare,
    ProtocolVersion,
    input_share_info,
)

logger = logging.getLogger(__name__)


class Encryptor:
    """Seals each input share to its aggregator's HPKE config."""

    def __init__(self, hpke: Optional[Hpke] = None) -> None:
        self._hpke = hpke or Rfc9180Hpke()

    def encrypt(
        self,
        share: bytes,
        aggregator: AggregatorEndpoint,
        aad: InputShareAad,
        version: ProtocolVersion,
    ) -> HpkeCiphertext:
        """
        The AAD binds the ciphertext to the task, report ID, time and public share;
        the HPKE info string binds it to the receiving aggregator's role.
        """
        config = aggregator.hpke_config
        if not self._hpke.is_supported(config):
            raise EncryptionFailed(
                f"HPKE suite of config {config.id} for {aggregator.endpoint} is not supported "
                f"(kem=0x{config.kem_id:04x} kdf=0x{config.kdf_id:04x} aead=0x{config.aead_id:04x})"
            )
        plaintext = PlaintextInputShare(payload=bytes(share)).encode()
        try:
            return self._hpke.seal(config, input_share_info(version, aggregator.role), plaintext, aad.encode())
        except (ValueError, TypeError) as exc:
            logger.error(f"Failed to seal input share for {aggregator.endpoint}: {exc}")
            raise EncryptionFailed(
                f"could not encrypt to HPKE config {config.id} of {aggregator.endpoint}: {exc}"
            ) from exc
