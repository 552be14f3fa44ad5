from .logging import JsonFormatter, configure_logging
from .metrics import InMemoryMetrics, MetricPoint, Timer
from .retry import SecretScope, backoff_delay, wipe

__all__ = [
    "JsonFormatter",
    "configure_logging",
    "InMemoryMetrics",
    "MetricPoint",
    "Timer",
    "SecretScope",
    "backoff_delay",
    "wipe",
]
