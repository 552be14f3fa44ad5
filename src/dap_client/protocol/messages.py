"""DAP protocol messages used on the client side of report upload."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple

from dap_client.errors import CodecError, UnsupportedVersion
from dap_client.protocol.codec import (
    Reader,
    encode_opaque,
    encode_u8,
    encode_u16,
    encode_u64,
)

TASK_ID_LENGTH = 32
REPORT_ID_LENGTH = 16
REPORT_MEDIA_TYPE = "application/dap-report"
DAP_ERROR_URN_PREFIX = "urn:ietf:params:ppm:dap:error:"


class ProtocolVersion(str, Enum):
    """Protocol drafts whose report layout this client can produce."""

    DAP_07 = "dap-07"
    DAP_09 = "dap-09"

    @classmethod
    def parse(cls, value: str) -> "ProtocolVersion":
        try:
            return cls(str(value))
        except ValueError as exc:
            supported = ", ".join(v.value for v in cls)
            raise UnsupportedVersion(
                f"protocol version '{value}' is not supported (supported: {supported})"
            ) from exc

    @property
    def input_share_label(self) -> bytes:
        return f"{self.value} input share".encode()


class Role(IntEnum):
    COLLECTOR = 0
    CLIENT = 1
    LEADER = 2
    HELPER = 3


_B64URL_PATTERN = re.compile(r"[A-Za-z0-9_-]*={0,2}")


def b64url_decode(text: str) -> bytes:
    """Strict base64url: characters outside the URL-safe alphabet are an error, not skipped."""
    if not _B64URL_PATTERN.fullmatch(text):
        raise CodecError("invalid base64url value: characters outside the URL-safe alphabet")
    stripped = text.rstrip("=")
    try:
        return base64.urlsafe_b64decode(stripped + "=" * (-len(stripped) % 4))
    except binascii.Error as exc:
        raise CodecError(f"invalid base64url value: {exc}") from exc


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class TaskId:
    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != TASK_ID_LENGTH:
            raise CodecError(f"TaskId must be {TASK_ID_LENGTH} bytes long")

    @classmethod
    def parse(cls, text: str) -> "TaskId":
        """Parse the unpadded base64url form used in URLs and config files."""
        return cls(b64url_decode(text))

    def encode_to_string(self) -> str:
        return b64url_encode(self.data)

    def encode(self) -> bytes:
        return bytes(self.data)

    def __str__(self) -> str:
        return self.encode_to_string()


@dataclass(frozen=True)
class ReportId:
    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != REPORT_ID_LENGTH:
            raise CodecError(f"ReportId must be {REPORT_ID_LENGTH} bytes long")

    def encode(self) -> bytes:
        return bytes(self.data)

    def hex(self) -> str:
        return self.data.hex()


@dataclass(frozen=True)
class HpkeConfig:
    id: int
    kem_id: int
    kdf_id: int
    aead_id: int
    public_key: bytes

    def encode(self) -> bytes:
        return (
            encode_u8(self.id)
            + encode_u16(self.kem_id)
            + encode_u16(self.kdf_id)
            + encode_u16(self.aead_id)
            + encode_opaque(self.public_key, 2)
        )

    @classmethod
    def read(cls, reader: Reader) -> "HpkeConfig":
        config_id = reader.read_u8()
        kem_id = reader.read_u16()
        kdf_id = reader.read_u16()
        aead_id = reader.read_u16()
        public_key = reader.read_opaque(2)
        if not public_key:
            raise CodecError("HPKE config public key must not be empty")
        return cls(id=config_id, kem_id=kem_id, kdf_id=kdf_id, aead_id=aead_id, public_key=public_key)

    @classmethod
    def decode(cls, data: bytes) -> "HpkeConfig":
        reader = Reader(data)
        config = cls.read(reader)
        reader.finish()
        return config


@dataclass(frozen=True)
class HpkeConfigList:
    configs: Tuple[HpkeConfig, ...] = ()

    def encode(self) -> bytes:
        return encode_opaque(b"".join(c.encode() for c in self.configs), 2)

    @classmethod
    def decode(cls, data: bytes) -> "HpkeConfigList":
        outer = Reader(data)
        inner = Reader(outer.read_opaque(2))
        outer.finish()
        configs: List[HpkeConfig] = []
        while inner.remaining:
            configs.append(HpkeConfig.read(inner))
        return cls(configs=tuple(configs))


@dataclass(frozen=True)
class HpkeCiphertext:
    """One encrypted input share: the config it was sealed to, the encapsulated key and the sealed payload."""

    config_id: int
    enc: bytes
    payload: bytes

    def encode(self) -> bytes:
        return encode_u8(self.config_id) + encode_opaque(self.enc, 2) + encode_opaque(self.payload, 4)

    @classmethod
    def read(cls, reader: Reader) -> "HpkeCiphertext":
        config_id = reader.read_u8()
        enc = reader.read_opaque(2)
        payload = reader.read_opaque(4)
        return cls(config_id=config_id, enc=enc, payload=payload)


@dataclass(frozen=True)
class ReportMetadata:
    report_id: ReportId
    time: int

    def encode(self) -> bytes:
        return self.report_id.encode() + encode_u64(self.time)

    @classmethod
    def read(cls, reader: Reader) -> "ReportMetadata":
        report_id = ReportId(reader.read_bytes(REPORT_ID_LENGTH))
        return cls(report_id=report_id, time=reader.read_u64())


@dataclass(frozen=True)
class PlaintextInputShare:
    payload: bytes
    extensions: bytes = b""

    def encode(self) -> bytes:
        return encode_opaque(self.extensions, 2) + encode_opaque(self.payload, 4)

    @classmethod
    def decode(cls, data: bytes) -> "PlaintextInputShare":
        reader = Reader(data)
        extensions = reader.read_opaque(2)
        payload = reader.read_opaque(4)
        reader.finish()
        return cls(payload=payload, extensions=extensions)


@dataclass(frozen=True)
class InputShareAad:
    """Associated data binding a sealed input share to its report."""

    task_id: TaskId
    metadata: ReportMetadata
    public_share: bytes

    def encode(self) -> bytes:
        return self.task_id.encode() + self.metadata.encode() + encode_opaque(self.public_share, 4)


def input_share_info(version: ProtocolVersion, receiver: Role) -> bytes:
    """HPKE application info naming the sender and the receiving aggregator role."""
    return version.input_share_label + encode_u8(Role.CLIENT) + encode_u8(receiver)


@dataclass(frozen=True)
class Report:
    task_id: TaskId
    metadata: ReportMetadata
    public_share: bytes
    encrypted_input_shares: Tuple[HpkeCiphertext, ...] = field(default_factory=tuple)

    @property
    def report_id(self) -> ReportId:
        return self.metadata.report_id

    @property
    def time(self) -> int:
        return self.metadata.time

    def encode(self) -> bytes:
        parts = [
            self.task_id.encode(),
            self.metadata.encode(),
            encode_opaque(self.public_share, 4),
        ]
        parts.extend(share.encode() for share in self.encrypted_input_shares)
        return b"".join(parts)

    @classmethod
    def decode(cls, data: bytes, expected_shares: Optional[int] = None) -> "Report":
        """
        The share list runs to the end of the message. It must not be empty and,
        when expected_shares is given, must hold exactly that many ciphertexts.
        """
        reader = Reader(data)
        task_id = TaskId(reader.read_bytes(TASK_ID_LENGTH))
        metadata = ReportMetadata.read(reader)
        public_share = reader.read_opaque(4)
        shares: List[HpkeCiphertext] = []
        while reader.remaining:
            shares.append(HpkeCiphertext.read(reader))
        if not shares:
            raise CodecError("report carries no encrypted input shares")
        if expected_shares is not None and len(shares) != expected_shares:
            raise CodecError(f"report carries {len(shares)} encrypted input shares, expected {expected_shares}")
        return cls(
            task_id=task_id,
            metadata=metadata,
            public_share=public_share,
            encrypted_input_shares=tuple(shares),
        )
