"""Tests for the SnapshotStore and exposition rendering."""

import threading

from hostmetrics.models import Snapshot
from hostmetrics.store import CONTENT_TYPE, SnapshotStore, render_exposition

EXPECTED = """\
# HELP cpu_usage CPU usage percentage
# TYPE cpu_usage gauge
cpu_usage 12.35
# HELP mem_usage Memory usage percentage
# TYPE mem_usage gauge
mem_usage 60.00
# HELP uptime_seconds Collector uptime in sampling ticks
# TYPE uptime_seconds counter
uptime_seconds 42
# HELP collector_up 1 if the last CPU and memory reads succeeded
# TYPE collector_up gauge
collector_up 1
"""


class TestRenderExposition:
    """Tests for the exposition document."""

    def test_full_document(self):
        """Test family names, order and value formatting."""
        snapshot = Snapshot(
            cpu_percent=12.3456,
            mem_percent=60.0,
            uptime_seconds=42,
            cpu_read_ok=True,
            mem_read_ok=True,
        )
        assert render_exposition(snapshot) == EXPECTED

    def test_collector_down_when_a_read_failed(self):
        """Test collector_up is 0 when either flag is false."""
        document = render_exposition(Snapshot(cpu_read_ok=True, mem_read_ok=False))
        assert document.splitlines()[-1] == "collector_up 0"

    def test_no_scientific_notation(self):
        """Test tiny and large values stay plain decimals."""
        document = render_exposition(Snapshot(cpu_percent=1e-9, mem_percent=100.0, uptime_seconds=10**12))

        assert "cpu_usage 0.00\n" in document
        assert "mem_usage 100.00\n" in document
        assert "uptime_seconds 1000000000000\n" in document
        values = [line.split()[1] for line in document.splitlines() if not line.startswith("#")]
        assert not any("e" in value for value in values)

    def test_content_type(self):
        """Test the Prometheus text format version."""
        assert CONTENT_TYPE == "text/plain; version=0.0.4"


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_initial_snapshot_is_default(self):
        """Test a new store holds the all-zero Snapshot."""
        store = SnapshotStore()
        assert store.current() == Snapshot()
        assert "collector_up 0" in store.render_exposition()

    def test_publish_replaces_current(self):
        """Test publish swaps the whole value."""
        store = SnapshotStore()
        snapshot = Snapshot(cpu_percent=5.0, uptime_seconds=1, cpu_read_ok=True)

        store.publish(snapshot)

        assert store.current() == snapshot
        assert "cpu_usage 5.00" in store.render_exposition()

    def test_wait_for_publish(self):
        """Test wait_for_publish times out until something is published."""
        store = SnapshotStore()
        assert store.wait_for_publish(timeout=0.01) is False

        store.publish(Snapshot(uptime_seconds=1))
        assert store.wait_for_publish(timeout=0.01) is True

    def test_concurrent_readers_never_see_torn_snapshots(self):
        """Test readers interleaved with a writer always see one tick's fields."""
        store = SnapshotStore()
        stop = threading.Event()
        errors: list[str] = []

        def writer() -> None:
            for tick in range(1, 5001):
                # Every field is derived from the tick number
                store.publish(
                    Snapshot(
                        cpu_percent=float(tick % 100),
                        mem_percent=float(tick % 50),
                        uptime_seconds=tick,
                        cpu_read_ok=tick % 2 == 0,
                        mem_read_ok=tick % 3 == 0,
                    )
                )
            stop.set()

        def reader() -> None:
            while not stop.is_set():
                snap = store.current()
                tick = snap.uptime_seconds
                if tick == 0:
                    continue
                if (
                    snap.cpu_percent != float(tick % 100)
                    or snap.mem_percent != float(tick % 50)
                    or snap.cpu_read_ok != (tick % 2 == 0)
                    or snap.mem_read_ok != (tick % 3 == 0)
                ):
                    errors.append(f"torn snapshot {snap}")
                lines = store.render_exposition().splitlines()
                uptime = int(lines[8].split()[1])
                cpu = float(lines[2].split()[1])
                if uptime and cpu != float(uptime % 100):
                    errors.append(f"torn document uptime={uptime} cpu={cpu}")

        readers = [threading.Thread(target=reader) for _ in range(8)]
        for thread in readers:
            thread.start()
        writer_thread = threading.Thread(target=writer)
        writer_thread.start()

        writer_thread.join(timeout=30)
        for thread in readers:
            thread.join(timeout=30)

        assert not errors, errors[:5]
        assert store.current().uptime_seconds == 5000
