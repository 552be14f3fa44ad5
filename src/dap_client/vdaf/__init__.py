from .base import Vdaf, VdafType
from .field import Field, Field64, Field128
from .prio3 import Prio3, Prio3Count, Prio3Histogram, Prio3Sum, Prio3SumVec, build_vdaf

__all__ = [
    "Vdaf",
    "VdafType",
    "Field",
    "Field64",
    "Field128",
    "Prio3",
    "Prio3Count",
    "Prio3Histogram",
    "Prio3Sum",
    "Prio3SumVec",
    "build_vdaf",
]
