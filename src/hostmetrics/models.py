"""Data models for hostmetrics."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CpuTimes:
    """Cumulative CPU accounting ticks since boot."""

    user: int
    nice: int
    system: int
    idle: int
    iowait: int
    irq: int
    softirq: int
    steal: int

    @property
    def idle_all(self) -> int:
        """Ticks spent idle, including waiting on I/O."""
        return self.idle + self.iowait

    @property
    def non_idle(self) -> int:
        return self.user + self.nice + self.system + self.irq + self.softirq + self.steal

    @property
    def total(self) -> int:
        return self.idle_all + self.non_idle


@dataclass(slots=True, frozen=True)
class MemInfo:
    """Memory totals in kilobytes."""

    total_kb: int
    available_kb: int


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    Immutable result of one sampling tick.

    A new Snapshot replaces the previous one as a whole, so readers holding a
    reference always see fields from the same tick.
    """

    cpu_percent: float = 0.0  # 0.0 - 100.0
    mem_percent: float = 0.0  # 0.0 - 100.0
    uptime_seconds: int = 0  # ticks completed
    cpu_read_ok: bool = False
    mem_read_ok: bool = False

    @property
    def collector_up(self) -> bool:
        """True when both the CPU and the memory read succeeded."""
        return self.cpu_read_ok and self.mem_read_ok
