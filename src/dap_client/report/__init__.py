from .builder import ReportBuilder, floor_time
from .encryptor import Encryptor
from .sharder import ShardedMeasurement, Sharder

__all__ = [
    "Encryptor",
    "ReportBuilder",
    "ShardedMeasurement",
    "Sharder",
    "floor_time",
]
