import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from dap_client import __version__
from dap_client.crypto.hpke import is_suite_supported
from dap_client.errors import CodecError, EncryptionFailed
from dap_client.protocol.messages import (
    HpkeConfig,
    HpkeConfigList,
    ProtocolVersion,
    Role,
    TaskId,
    b64url_decode,
)
from dap_client.vdaf import Vdaf, VdafType, build_vdaf


class JitterMode(str, Enum):
    NONE = "none"
    FULL = "full"
    EQUAL = "equal"


def _b64url_bytes(value: str, what: str) -> bytes:
    try:
        return b64url_decode(str(value))
    except CodecError as exc:
        raise ValueError(f"{what} is not valid base64url") from exc


def select_hpke_config(config_list: HpkeConfigList) -> HpkeConfig:
    """
    Pick the first config whose algorithm suite is supported locally.
    Raises EncryptionFailed if the list is empty or nothing in it is usable.
    """
    if not config_list.configs:
        raise EncryptionFailed("aggregator published an empty HPKE config list")
    for config in config_list.configs:
        if is_suite_supported(config):
            return config
    first = config_list.configs[0]
    raise EncryptionFailed(
        f"no supported HPKE config (first: kem=0x{first.kem_id:04x} "
        f"kdf=0x{first.kdf_id:04x} aead=0x{first.aead_id:04x})"
    )


@dataclass(frozen=True)
class AggregatorEndpoint:
    role: Role
    endpoint: str
    hpke_config: HpkeConfig

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregatorEndpoint":
        try:
            role_name = str(data["role"]).upper()
            endpoint = str(data["endpoint"])
        except KeyError as exc:
            raise ValueError(f"Aggregator config missing required field {exc}") from exc
        if role_name not in ("LEADER", "HELPER"):
            raise ValueError(f"Aggregator role must be 'leader' or 'helper', got '{data['role']}'")
        if "hpke_config" in data:
            raw = data["hpke_config"]
            if isinstance(raw, Mapping):
                hpke_config = HpkeConfig(
                    id=int(raw["id"]),
                    kem_id=int(raw["kem_id"]),
                    kdf_id=int(raw["kdf_id"]),
                    aead_id=int(raw["aead_id"]),
                    public_key=_b64url_bytes(raw["public_key"], "hpke_config.public_key"),
                )
            else:
                try:
                    hpke_config = HpkeConfig.decode(_b64url_bytes(raw, "hpke_config"))
                except CodecError as exc:
                    raise ValueError(f"Malformed hpke_config for {endpoint}: {exc}") from exc
        elif "hpke_config_list" in data:
            try:
                config_list = HpkeConfigList.decode(
                    _b64url_bytes(data["hpke_config_list"], "hpke_config_list")
                )
            except CodecError as exc:
                raise ValueError(f"Malformed hpke_config_list for {endpoint}: {exc}") from exc
            hpke_config = select_hpke_config(config_list)
        else:
            raise ValueError(f"Aggregator {endpoint} needs 'hpke_config' or 'hpke_config_list'")
        return cls(role=Role[role_name], endpoint=endpoint, hpke_config=hpke_config)

    def __post_init__(self) -> None:
        scheme = urlsplit(self.endpoint).scheme
        if scheme not in ("http", "https"):
            raise ValueError(f"Aggregator endpoint must be an HTTP or HTTPS URL: {self.endpoint}")
        if self.role not in (Role.LEADER, Role.HELPER):
            raise ValueError(f"Aggregator role must be leader or helper, got {self.role.name}")


@dataclass(frozen=True)
class VdafConfig:
    type: VdafType
    parameters: Tuple[Tuple[str, int], ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "VdafConfig":
        try:
            vdaf_type = VdafType(str(data["type"]))
        except KeyError as exc:
            raise ValueError("VDAF config missing required field 'type'") from exc
        except ValueError as exc:
            raise ValueError(f"Unknown VDAF type '{data['type']}'") from exc
        params = tuple(sorted((str(k), int(v)) for k, v in data.items() if k != "type"))
        cfg = cls(type=vdaf_type, parameters=params)
        cfg.build()
        return cfg

    def build(self) -> Vdaf:
        try:
            return build_vdaf(self.type, **dict(self.parameters))
        except TypeError as exc:
            raise ValueError(f"Bad parameters for {self.type.value}: {exc}") from exc


@dataclass(frozen=True)
class TaskConfig:
    """
    Immutable description of one aggregation task.

    Aggregators are ordered leader first; input shares are produced and encrypted in
    this order. A refreshed config (e.g. after a key rotation) is a new instance.
    """

    task_id: TaskId
    aggregators: Tuple[AggregatorEndpoint, ...]
    vdaf: VdafConfig
    time_precision: int
    protocol_version: str = ProtocolVersion.DAP_09.value

    def __post_init__(self) -> None:
        if self.time_precision <= 0:
            raise ValueError("time_precision must be positive")
        if not self.aggregators or self.aggregators[0].role != Role.LEADER:
            raise ValueError("The first aggregator must be the leader")
        if sum(1 for a in self.aggregators if a.role == Role.LEADER) != 1:
            raise ValueError("Exactly one aggregator must be the leader")
        expected = self.vdaf.build().shares
        if len(self.aggregators) != expected:
            raise ValueError(
                f"{self.vdaf.type.value} requires {expected} aggregators, got {len(self.aggregators)}"
            )

    @property
    def leader(self) -> AggregatorEndpoint:
        return self.aggregators[0]

    @classmethod
    def from_file(cls, path: Path) -> "TaskConfig":
        return cls.from_dict(json.loads(Path(path).read_text()))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskConfig":
        try:
            task_id = TaskId.parse(str(data["task_id"]))
            aggregators = tuple(AggregatorEndpoint.from_dict(a) for a in data["aggregators"])
            vdaf = VdafConfig.from_mapping(data["vdaf"])
            time_precision = int(data["time_precision"])
        except KeyError as exc:
            raise ValueError(f"Task config missing required field {exc}") from exc
        except CodecError as exc:
            raise ValueError(f"Invalid task_id: {exc}") from exc
        # The version is checked when a report is built, not here.
        protocol_version = str(data.get("protocol_version", ProtocolVersion.DAP_09.value))
        return cls(
            task_id=task_id,
            aggregators=aggregators,
            vdaf=vdaf,
            time_precision=time_precision,
            protocol_version=protocol_version,
        )


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: JitterMode = JitterMode.FULL

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("retry.max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")
        if self.multiplier < 1:
            raise ValueError("retry.multiplier must be >= 1")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RetryConfig":
        if not data:
            return cls()
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in ("max_attempts",):
                kwargs[key] = int(value)
            elif key in ("base_delay", "max_delay", "multiplier"):
                kwargs[key] = float(value)
            elif key == "jitter":
                try:
                    kwargs[key] = JitterMode(str(value))
                except ValueError as exc:
                    raise ValueError(f"Unknown jitter mode '{value}'") from exc
            else:
                raise ValueError(f"Unknown retry key '{key}'")
        return cls(**kwargs)


@dataclass
class TransportConfig:
    request_timeout: float = 10.0
    upload_method: str = "POST"
    transient_statuses: FrozenSet[int] = frozenset({408, 429})
    user_agent: str = f"dap-client/{__version__}"

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ValueError("transport.request_timeout must be positive")
        self.upload_method = self.upload_method.upper()
        if self.upload_method not in ("POST", "PUT"):
            raise ValueError("transport.upload_method must be POST or PUT")
        for status in self.transient_statuses:
            if not 400 <= status <= 499:
                raise ValueError(f"transport.transient_statuses entry {status} is not a 4xx status")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "TransportConfig":
        if not data:
            return cls()
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "request_timeout":
                kwargs[key] = float(value)
            elif key in ("upload_method", "user_agent"):
                kwargs[key] = str(value)
            elif key == "transient_statuses":
                kwargs[key] = frozenset(int(v) for v in value)
            else:
                raise ValueError(f"Unknown transport key '{key}'")
        return cls(**kwargs)


@dataclass
class ClientSettings:
    retry: RetryConfig = field(default_factory=RetryConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ClientSettings":
        if not data:
            return cls()
        return cls(
            retry=RetryConfig.from_mapping(data.get("retry")),
            transport=TransportConfig.from_mapping(data.get("transport")),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def apply_logging(self, json_output: bool = False, log_file: Optional[str] = None) -> None:
        """Configure the ``dap_client`` loggers at this settings' log level."""
        from dap_client.utils.logging import configure_logging

        configure_logging(self.log_level, json_output=json_output, log_file=log_file)
