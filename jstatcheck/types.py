"""Type definitions for jstatcheck."""

from dataclasses import dataclass, field
from enum import IntEnum


class Status(IntEnum):
    """Nagios plugin states. The value is the process exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass(frozen=True)
class ProcessTarget:
    pid: int
    label: str


@dataclass
class JavaProcess:
    pid: int
    name: str
    arguments: str = ""  # only filled in by `jps -v`


@dataclass(frozen=True)
class GcSample:
    """Live generational counters from `jstat -gc`, in KB as printed."""

    s0_used: float
    s1_used: float
    eden_used: float
    old_used: float
    s0_capacity: float
    s1_capacity: float
    eden_capacity: float
    old_capacity: float
    metaspace_used: float


@dataclass(frozen=True)
class MetaspaceCapacitySample:
    max_capacity: float  # MCMX from `jstat -gcmetacapacity`


@dataclass(frozen=True)
class DerivedMetrics:
    heap_used: int
    heap_capacity: int
    metaspace_used: int
    metaspace_capacity: int
    heap_ratio: int
    metaspace_ratio: int


@dataclass(frozen=True)
class Thresholds:
    warning: int = 90
    critical: int = 95


@dataclass(frozen=True)
class PerfDatum:
    label: str
    value: int
    warning: int
    critical: int
    minimum: int
    maximum: int
    unit: str = ""


@dataclass
class Verdict:
    status: Status
    reason: str
    perfdata: list[PerfDatum] = field(default_factory=list)
