"""Raw counter sources for the sampler."""

import os
from pathlib import Path
from typing import Protocol

import psutil

from hostmetrics.errors import CounterReadError
from hostmetrics.models import CpuTimes, MemInfo

PROC_STAT = Path("/proc/stat")
PROC_MEMINFO = Path("/proc/meminfo")

# user nice system idle iowait irq softirq steal
CPU_FIELD_COUNT = 8

SOURCE_NAMES = ("proc", "psutil")


class CounterSource(Protocol):
    """Anything that can produce raw CPU and memory counters."""

    def read_cpu(self) -> CpuTimes: ...

    def read_memory(self) -> MemInfo: ...


def parse_cpu_line(line: str) -> CpuTimes:
    """
    Parse the aggregate ``cpu`` line of /proc/stat.

    Columns after ``steal`` (guest, guest_nice) are ignored.

    Raises:
        CounterReadError: If the label is wrong or fields are missing or not
            non-negative integers.
    """
    parts = line.split()
    if not parts or parts[0] != "cpu":
        raise CounterReadError(f"unexpected cpu line: {line[:40]!r}")
    fields = parts[1 : 1 + CPU_FIELD_COUNT]
    if len(fields) < CPU_FIELD_COUNT:
        raise CounterReadError(f"expected {CPU_FIELD_COUNT} cpu fields, got {len(fields)}")
    if not all(field.isascii() and field.isdigit() for field in fields):
        raise CounterReadError(f"non-numeric cpu fields: {fields}")
    return CpuTimes(*(int(field) for field in fields))


def parse_meminfo(lines) -> MemInfo:
    """
    Extract MemTotal and MemAvailable (kB) from /proc/meminfo lines.

    Only the first occurrence of each key counts; scanning stops once both
    have been seen.

    Raises:
        CounterReadError: If either key is missing or its value is not numeric.
    """
    total: int | None = None
    available: int | None = None
    for line in lines:
        parts = line.split()
        if len(parts) < 2:
            continue
        key, value = parts[0], parts[1]
        if key == "MemTotal:" and total is None:
            total = _parse_kb(key, value)
        elif key == "MemAvailable:" and available is None:
            available = _parse_kb(key, value)
        if total is not None and available is not None:
            return MemInfo(total_kb=total, available_kb=available)

    missing = [k for k, v in (("MemTotal", total), ("MemAvailable", available)) if v is None]
    raise CounterReadError(f"meminfo missing {', '.join(missing)}")


def _parse_kb(key: str, value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise CounterReadError(f"non-numeric value for {key} {value!r}")
    return int(value)


class ProcCounterSource:
    """Reads counters straight from the Linux procfs files."""

    def __init__(self, stat_path: Path = PROC_STAT, meminfo_path: Path = PROC_MEMINFO) -> None:
        self.stat_path = Path(stat_path)
        self.meminfo_path = Path(meminfo_path)

    def read_cpu(self) -> CpuTimes:
        try:
            with self.stat_path.open(encoding="ascii") as f:
                line = f.readline()
        except (OSError, UnicodeDecodeError) as exc:
            raise CounterReadError(f"cannot read {self.stat_path}: {exc}") from exc
        return parse_cpu_line(line)

    def read_memory(self) -> MemInfo:
        try:
            with self.meminfo_path.open(encoding="ascii") as f:
                return parse_meminfo(f)
        except (OSError, UnicodeDecodeError) as exc:
            raise CounterReadError(f"cannot read {self.meminfo_path}: {exc}") from exc


def _clock_ticks() -> int:
    if hasattr(os, "sysconf"):
        try:
            return os.sysconf("SC_CLK_TCK")
        except (ValueError, OSError):
            pass
    return 100


class PsutilCounterSource:
    """
    Reads counters through psutil, for hosts without procfs.

    psutil reports CPU times in seconds; they are converted back to clock
    ticks so the sampler sees the same integer counters as with procfs.
    Fields the platform does not report count as zero.
    """

    def __init__(self) -> None:
        self._ticks_per_second = _clock_ticks()

    def read_cpu(self) -> CpuTimes:
        try:
            times = psutil.cpu_times()
        except (psutil.Error, OSError) as exc:
            raise CounterReadError(f"psutil.cpu_times failed: {exc}") from exc

        def ticks(name: str) -> int:
            return max(0, round(getattr(times, name, 0.0) * self._ticks_per_second))

        return CpuTimes(
            user=ticks("user"),
            nice=ticks("nice"),
            system=ticks("system"),
            idle=ticks("idle"),
            iowait=ticks("iowait"),
            irq=ticks("irq"),
            softirq=ticks("softirq"),
            steal=ticks("steal"),
        )

    def read_memory(self) -> MemInfo:
        try:
            mem = psutil.virtual_memory()
        except (psutil.Error, OSError) as exc:
            raise CounterReadError(f"psutil.virtual_memory failed: {exc}") from exc
        return MemInfo(total_kb=mem.total // 1024, available_kb=mem.available // 1024)


def create_source(name: str) -> CounterSource:
    """Build a counter source by its configuration name."""
    if name == "proc":
        return ProcCounterSource()
    if name == "psutil":
        return PsutilCounterSource()
    raise ValueError(f"unknown counter source {name!r}, expected one of {SOURCE_NAMES}")
