"""Sampling step: turns raw counters into a Snapshot."""

import logging

from hostmetrics.errors import CounterReadError
from hostmetrics.models import CpuTimes, MemInfo, Snapshot
from hostmetrics.sources import CounterSource, ProcCounterSource

logger = logging.getLogger(__name__)


def clamp_percent(value: float) -> float:
    """Clamp a percentage to [0, 100]."""
    return max(0.0, min(100.0, value))


def memory_percent(mem: MemInfo) -> float | None:
    """Used memory as a percentage of total, or None when total is zero."""
    if mem.total_kb == 0:
        return None
    used = mem.total_kb - mem.available_kb
    return clamp_percent(100.0 * used / mem.total_kb)


class Sampler:
    """
    Produces one Snapshot per tick from a counter source.

    CPU usage is a rate, so it needs two readings: the first successful read
    only seeds the baseline and reports 0.0. Every later successful read
    replaces the baseline; a failed read clears it so the next delta is never
    taken against a reading older than the one immediately before it.

    Read failures never raise out of tick(); they show up as the
    ``cpu_read_ok`` / ``mem_read_ok`` flags of the returned Snapshot.

    Not thread-safe: a single scheduling thread is expected to call tick().
    """

    def __init__(self, source: CounterSource | None = None) -> None:
        self._source = source if source is not None else ProcCounterSource()
        self._previous_idle = 0
        self._previous_total = 0
        self._has_prior_sample = False
        self._uptime = 0
        self._last = Snapshot()

    @property
    def has_prior_sample(self) -> bool:
        return self._has_prior_sample

    @property
    def baseline(self) -> tuple[int, int]:
        """(idle_all, total) of the last successful CPU read."""
        return self._previous_idle, self._previous_total

    def tick(self) -> Snapshot:
        """Take one sample and return the resulting Snapshot."""
        cpu_percent, cpu_ok = self._sample_cpu()
        mem_percent, mem_ok = self._sample_memory()
        self._uptime += 1

        snapshot = Snapshot(
            cpu_percent=cpu_percent,
            mem_percent=mem_percent,
            uptime_seconds=self._uptime,
            cpu_read_ok=cpu_ok,
            mem_read_ok=mem_ok,
        )
        self._log_transitions(snapshot)
        self._last = snapshot
        return snapshot

    def _sample_cpu(self) -> tuple[float, bool]:
        try:
            times = self._source.read_cpu()
        except CounterReadError as exc:
            logger.debug("CPU read failed: %s", exc)
            self._has_prior_sample = False
            return 0.0, False
        return self._cpu_from_times(times)

    def _cpu_from_times(self, times: CpuTimes) -> tuple[float, bool]:
        idle_all = times.idle_all
        total = times.total

        if not self._has_prior_sample:
            self._previous_idle = idle_all
            self._previous_total = total
            self._has_prior_sample = True
            return 0.0, True

        idle_delta = idle_all - self._previous_idle
        total_delta = total - self._previous_total
        self._previous_idle = idle_all
        self._previous_total = total

        if total_delta == 0:
            # No accounting ticks elapsed since the last read
            return 0.0, False

        usage = 100.0 * (1.0 - idle_delta / total_delta)
        return clamp_percent(usage), True

    def _sample_memory(self) -> tuple[float, bool]:
        try:
            mem = self._source.read_memory()
        except CounterReadError as exc:
            logger.debug("Memory read failed: %s", exc)
            return 0.0, False
        percent = memory_percent(mem)
        if percent is None:
            logger.debug("Memory source reported MemTotal of 0")
            return 0.0, False
        return percent, True

    def _log_transitions(self, snapshot: Snapshot) -> None:
        # Tick 1 compares against the all-False default, so only report failures there
        first = snapshot.uptime_seconds == 1
        for name, was_ok, is_ok in (
            ("cpu", self._last.cpu_read_ok, snapshot.cpu_read_ok),
            ("memory", self._last.mem_read_ok, snapshot.mem_read_ok),
        ):
            if not is_ok and (was_ok or first):
                logger.warning("%s counters unavailable, reporting 0.0", name)
            elif is_ok and not was_ok and not first:
                logger.info("%s counters readable again", name)
