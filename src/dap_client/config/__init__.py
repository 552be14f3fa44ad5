from .models import (
    AggregatorEndpoint,
    ClientSettings,
    JitterMode,
    RetryConfig,
    TaskConfig,
    TransportConfig,
    VdafConfig,
    select_hpke_config,
)
from .system import CLIENT_CONFIG_ENV_VAR, load_client_settings, resolve_client_config_path

__all__ = [
    "AggregatorEndpoint",
    "ClientSettings",
    "JitterMode",
    "RetryConfig",
    "TaskConfig",
    "TransportConfig",
    "VdafConfig",
    "select_hpke_config",
    "CLIENT_CONFIG_ENV_VAR",
    "load_client_settings",
    "resolve_client_config_path",
]
