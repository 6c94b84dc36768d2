"""Shared fixtures for hostmetrics tests."""

from collections import deque

import pytest

from hostmetrics.errors import CounterReadError
from hostmetrics.models import CpuTimes, MemInfo

FAIL = object()


def cpu(idle_all: int, total: int) -> CpuTimes:
    """CpuTimes with the given idle_all and total (all busy time in user)."""
    return CpuTimes(
        user=total - idle_all,
        nice=0,
        system=0,
        idle=idle_all,
        iowait=0,
        irq=0,
        softirq=0,
        steal=0,
    )


class ScriptedSource:
    """Counter source replaying scripted readings; FAIL entries raise."""

    def __init__(self, cpu_readings=(), mem_readings=()) -> None:
        self.cpu_readings = deque(cpu_readings)
        self.mem_readings = deque(mem_readings)
        self.default_mem = MemInfo(total_kb=1000, available_kb=500)

    def read_cpu(self) -> CpuTimes:
        if not self.cpu_readings:
            raise CounterReadError("no scripted cpu reading")
        reading = self.cpu_readings.popleft()
        if reading is FAIL:
            raise CounterReadError("scripted cpu failure")
        return reading

    def read_memory(self) -> MemInfo:
        if not self.mem_readings:
            return self.default_mem
        reading = self.mem_readings.popleft()
        if reading is FAIL:
            raise CounterReadError("scripted memory failure")
        return reading


class CountingSource:
    """Source whose CPU counters advance on every read, so every tick is valid."""

    def __init__(self) -> None:
        self.reads = 0

    def read_cpu(self) -> CpuTimes:
        self.reads += 1
        return cpu(idle_all=self.reads * 50, total=self.reads * 100)

    def read_memory(self) -> MemInfo:
        return MemInfo(total_kb=1000, available_kb=400)


@pytest.fixture
def counting_source() -> CountingSource:
    return CountingSource()
