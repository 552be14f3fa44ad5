"""
DAP client: prepares privacy-preserving aggregation reports and uploads them.

Subpackages:
- config: task and client settings
- vdaf: measurement sharding (Prio3 variants)
- crypto: HPKE and the PRG used for share expansion
- protocol: wire messages and codec
- report: sharder, encryptor and report builder
- transport: upload and response classification
"""

__version__ = "0.1.0"

from dap_client.client import Client, SubmissionResult, SubmissionState  # noqa: E402
from dap_client.config import ClientSettings, RetryConfig, TaskConfig, TransportConfig  # noqa: E402
from dap_client.protocol import TaskId  # noqa: E402

__all__ = [
    "__version__",
    "Client",
    "ClientSettings",
    "RetryConfig",
    "SubmissionResult",
    "SubmissionState",
    "TaskConfig",
    "TaskId",
    "TransportConfig",
]
