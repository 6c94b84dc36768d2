"""Command line entry point: serve, print or watch."""

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Sequence
from typing import TextIO

from hostmetrics import __version__
from hostmetrics.app import MetricsApp
from hostmetrics.config import LOG_LEVELS, Settings, load_settings, override
from hostmetrics.sampler import Sampler
from hostmetrics.scheduler import SchedulingLoop
from hostmetrics.server import MetricsServer
from hostmetrics.sources import SOURCE_NAMES, create_source
from hostmetrics.store import SnapshotStore

logger = logging.getLogger(__name__)

# How long serve waits for the first sample before accepting scrapes
FIRST_TICK_TIMEOUT = 2.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostmetrics",
        description="Sample host CPU and memory usage and expose it for Prometheus.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", help="bind address (env HOST)")
    parser.add_argument("--port", type=int, help="listen port (env PORT)")
    parser.add_argument("--interval-ms", type=int, help="sampling interval, 100-60000 ms (env INTERVAL_MS)")
    parser.add_argument("--source", choices=SOURCE_NAMES, help="counter source (env METRICS_SOURCE)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="log level (env LOG_LEVEL)")
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=("serve", "print", "watch"),
        help="serve: HTTP endpoint (default); print: write metrics to stdout; watch: dashboard",
    )
    return parser


def build_loop(settings: Settings, cancel: threading.Event) -> tuple[SnapshotStore, SchedulingLoop]:
    """Wire source, sampler, store and loop from settings."""
    store = SnapshotStore()
    sampler = Sampler(create_source(settings.source))
    loop = SchedulingLoop(sampler, store, interval=settings.interval, cancel=cancel)
    return store, loop


def install_signal_handlers(cancel: threading.Event) -> None:
    """Set ``cancel`` on SIGINT/SIGTERM."""

    def handle(signum: int, _frame: object) -> None:
        logger.info("Received %s", signal.Signals(signum).name)
        cancel.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def serve(settings: Settings, cancel: threading.Event) -> int:
    """Run the sampling loop and HTTP server until ``cancel`` is set."""
    store, loop = build_loop(settings, cancel)
    loop.start()
    loop.wait_for_first_tick(FIRST_TICK_TIMEOUT)

    try:
        server = MetricsServer(store, host=settings.host, port=settings.port)
    except OSError as exc:
        logger.error("Cannot listen on %s:%d: %s", settings.host, settings.port, exc)
        loop.stop()
        return 1

    server.start()
    try:
        cancel.wait()
    finally:
        logger.info("Shutting down")
        server.shutdown()
        loop.stop()
    return 0


def print_metrics(settings: Settings, cancel: threading.Event, out: TextIO | None = None) -> int:
    """
    Print the exposition document after every tick until ``cancel`` is set.

    Uses the same store as serve, read from the main thread.
    """
    out = out if out is not None else sys.stdout
    store, loop = build_loop(settings, cancel)
    loop.start()
    seen = 0
    try:
        while not cancel.is_set():
            snapshot = store.current()
            if snapshot.uptime_seconds != seen:
                seen = snapshot.uptime_seconds
                out.write(store.render_exposition())
                out.write("\n")
                out.flush()
            cancel.wait(min(0.1, settings.interval / 2))
    finally:
        loop.stop()
    return 0


def watch(settings: Settings, cancel: threading.Event) -> int:
    """Run the Textual dashboard."""
    store, loop = build_loop(settings, cancel)
    app = MetricsApp(store, loop)
    try:
        app.run()
    finally:
        loop.stop()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the hostmetrics command."""
    args = build_parser().parse_args(argv)
    settings = override(
        load_settings(),
        host=args.host,
        port=args.port,
        interval_ms=args.interval_ms,
        source=args.source,
        log_level=args.log_level,
    )
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "Using port %d, interval %d ms, source %s", settings.port, settings.interval_ms, settings.source
    )

    cancel = threading.Event()
    if args.command == "watch":
        # Textual handles Ctrl+C itself
        return watch(settings, cancel)
    install_signal_handlers(cancel)
    if args.command == "print":
        return print_metrics(settings, cancel)
    return serve(settings, cancel)


if __name__ == "__main__":
    sys.exit(main())
