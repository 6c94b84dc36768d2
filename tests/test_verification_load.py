"""Verification Test: Load Test - many concurrent scrapes.

Scrapers must always get a complete, self-consistent document while the
sampling thread keeps publishing.
"""

import http.client
import threading

import pytest
from conftest import CountingSource

from hostmetrics.sampler import Sampler
from hostmetrics.scheduler import SchedulingLoop
from hostmetrics.server import MetricsServer
from hostmetrics.store import SnapshotStore

SCRAPERS = 16
SCRAPES_PER_THREAD = 25


@pytest.fixture
def running_stack():
    """Loop and HTTP server sharing one store."""
    store = SnapshotStore()
    loop = SchedulingLoop(Sampler(CountingSource()), store, interval=0.1)
    server = MetricsServer(store, host="127.0.0.1", port=0)
    loop.start()
    loop.wait_for_first_tick(timeout=2.0)
    server.start()
    try:
        yield server
    finally:
        server.shutdown()
        loop.stop()


def scrape(port: int) -> tuple[int, str]:
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=10)
    try:
        conn.request("GET", "/metrics")
        response = conn.getresponse()
        return response.status, response.read().decode("utf-8")
    finally:
        conn.close()


class TestLoadTest:
    """Load test verification suite tests."""

    def test_concurrent_scrapes_are_consistent(self, running_stack):
        """Test every concurrent scrape returns a full, valid document."""
        errors: list[str] = []
        uptimes: list[int] = []
        lock = threading.Lock()

        def scraper() -> None:
            for _ in range(SCRAPES_PER_THREAD):
                try:
                    status, body = scrape(running_stack.port)
                except OSError as exc:
                    with lock:
                        errors.append(f"request failed: {exc}")
                    continue
                lines = body.splitlines()
                if status != 200 or len(lines) != 12:
                    with lock:
                        errors.append(f"bad response {status}: {body!r}")
                    continue
                values = {line.split()[0]: line.split()[1] for line in lines if not line.startswith("#")}
                # CountingSource always yields 50% CPU and 60% memory after its first tick
                uptime = int(values["uptime_seconds"])
                if uptime > 1 and (values["cpu_usage"], values["mem_usage"]) != ("50.00", "60.00"):
                    with lock:
                        errors.append(f"inconsistent document {values}")
                with lock:
                    uptimes.append(uptime)

        threads = [threading.Thread(target=scraper) for _ in range(SCRAPERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert not errors, errors[:5]
        assert len(uptimes) == SCRAPERS * SCRAPES_PER_THREAD
        assert min(uptimes) >= 1

    def test_healthz_under_load(self, running_stack):
        """Test the liveness probe answers while metrics are scraped."""
        conn = http.client.HTTPConnection("127.0.0.1", running_stack.port, timeout=5)
        try:
            conn.request("GET", "/healthz")
            response = conn.getresponse()
            assert response.status == 200
            assert response.read() == b"ok\n"
        finally:
            conn.close()
