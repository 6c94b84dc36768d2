"""Thread-safe holder of the latest Snapshot."""

import threading

from hostmetrics.models import Snapshot

CONTENT_TYPE = "text/plain; version=0.0.4"

_FAMILIES = (
    ("cpu_usage", "CPU usage percentage", "gauge"),
    ("mem_usage", "Memory usage percentage", "gauge"),
    ("uptime_seconds", "Collector uptime in sampling ticks", "counter"),
    ("collector_up", "1 if the last CPU and memory reads succeeded", "gauge"),
)


def render_exposition(snapshot: Snapshot) -> str:
    """
    Format a Snapshot in the Prometheus text exposition format.

    Family names and their order are fixed; floats use two decimals in plain
    notation.
    """
    values = (
        f"{snapshot.cpu_percent:.2f}",
        f"{snapshot.mem_percent:.2f}",
        str(snapshot.uptime_seconds),
        "1" if snapshot.collector_up else "0",
    )
    lines = []
    for (name, help_text, kind), value in zip(_FAMILIES, values):
        lines.append(f"# HELP {name} {help_text}")
        lines.append(f"# TYPE {name} {kind}")
        lines.append(f"{name} {value}")
    return "\n".join(lines) + "\n"


class SnapshotStore:
    """
    The single point where the sampling thread hands Snapshots to readers.

    Snapshots are immutable, so publishing and reading are reference swaps
    under a lock; no I/O happens while the lock is held.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._lock = threading.Lock()
        self._current = initial if initial is not None else Snapshot()
        self._published = threading.Event()

    def publish(self, snapshot: Snapshot) -> None:
        """Replace the current Snapshot."""
        with self._lock:
            self._current = snapshot
        self._published.set()

    def current(self) -> Snapshot:
        """Return the current Snapshot."""
        with self._lock:
            return self._current

    def render_exposition(self) -> str:
        """Render the current Snapshot as an exposition document."""
        return render_exposition(self.current())

    def wait_for_publish(self, timeout: float | None = None) -> bool:
        """Block until something has been published; False on timeout."""
        return self._published.wait(timeout)
