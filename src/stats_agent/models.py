"""Data models for stats-agent."""

import math
from dataclasses import dataclass
from typing import Any


def round_percent(value: float) -> float:
    """Round a percentage to two decimals, half away from zero."""
    if not math.isfinite(value):
        return value
    scaled = value * 100.0
    rounded = math.floor(abs(scaled) + 0.5)
    return math.copysign(rounded, scaled) / 100.0


def mean_percent(values: list[float] | tuple[float, ...]) -> float:
    """Rounded arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return round_percent(sum(values) / len(values))


@dataclass(slots=True, frozen=True)
class MemoryStats:
    """RAM and swap usage in bytes."""

    total: int
    used: int
    swap_total: int
    swap_used: int


@dataclass(slots=True, frozen=True)
class DiskStats:
    """Capacity of one mounted volume."""

    name: str
    available: int
    total: int


@dataclass(slots=True, frozen=True)
class NetStats:
    """Cumulative counters of one network interface."""

    interface: str
    rx_bytes: int
    tx_bytes: int
    rx_packets: int
    tx_packets: int
    rx_errors: int
    tx_errors: int


@dataclass(slots=True, frozen=True)
class ProcessStats:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    exe_path: str  # '' when the executable cannot be resolved
    memory_bytes: int  # RSS
    cpu_percent: float  # 0.0 - 100.0 * core_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "name": self.name,
            "exe": self.exe_path,
            "memory": self.memory_bytes,
            "cpu": self.cpu_percent,
        }


@dataclass(slots=True, frozen=True)
class OsInfo:
    """Static identity of the host operating system."""

    name: str
    kernel: str
    version: str
    arch: str


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    One sampling tick.

    ``processes`` and ``os`` are ``None`` when absent. An absent process list
    is not the same as an empty one: it means detail was not requested.
    """

    cpu: tuple[float, ...]
    cpu_avg: float
    memory: MemoryStats
    disks: tuple[DiskStats, ...]
    network: tuple[NetStats, ...]
    processes: tuple[ProcessStats, ...] | None = None
    os: OsInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        """Build the wire record, leaving out absent fields."""
        record: dict[str, Any] = {
            "cpu": list(self.cpu),
            "cpu_avg": self.cpu_avg,
            "memory": {
                "total": self.memory.total,
                "used": self.memory.used,
                "swap_total": self.memory.swap_total,
                "swap_used": self.memory.swap_used,
            },
            "disks": [
                {"name": d.name, "available": d.available, "total": d.total}
                for d in self.disks
            ],
            "network": [
                {
                    "interface": n.interface,
                    "rx_bytes": n.rx_bytes,
                    "tx_bytes": n.tx_bytes,
                    "rx_packets": n.rx_packets,
                    "tx_packets": n.tx_packets,
                    "rx_errors": n.rx_errors,
                    "tx_errors": n.tx_errors,
                }
                for n in self.network
            ],
        }
        if self.processes is not None:
            record["processes"] = [p.to_dict() for p in self.processes]
        if self.os is not None:
            record["os"] = {
                "name": self.os.name,
                "kernel": self.os.kernel,
                "version": self.os.version,
                "arch": self.os.arch,
            }
        return record
