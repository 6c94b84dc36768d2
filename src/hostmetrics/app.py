"""hostmetrics - live terminal dashboard over the snapshot store."""

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Footer, Static

from hostmetrics.models import Snapshot
from hostmetrics.scheduler import SchedulingLoop
from hostmetrics.store import SnapshotStore

BAR_WIDTH = 20


def render_bar(percent: float, color: str) -> str:
    """Render a percentage as a fixed-width Textual markup bar."""
    filled = min(int(percent / (100 / BAR_WIDTH)), BAR_WIDTH)
    return f"[{color}]█[/{color}]" * filled + "[dim]░[/dim]" * (BAR_WIDTH - filled)


def format_uptime(ticks: int, interval: float) -> str:
    """Format the sampler's uptime (ticks times interval) as [D days, ]HH:MM:SS."""
    uptime = int(ticks * interval)
    days = uptime // 86400
    hours = (uptime % 86400) // 3600
    minutes = (uptime % 3600) // 60
    seconds = uptime % 60
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class UsagePanel(Static):
    """CPU and memory bars for the current snapshot."""

    DEFAULT_CSS = """
    UsagePanel {
        height: auto;
        padding: 1;
        background: $surface;
    }
    """

    def show(self, snapshot: Snapshot) -> None:
        if snapshot.uptime_seconds == 0:
            self.update("Waiting for first sample...")
            return
        cpu = f"{snapshot.cpu_percent:5.1f}%" if snapshot.cpu_read_ok else "  n/a "
        mem = f"{snapshot.mem_percent:5.1f}%" if snapshot.mem_read_ok else "  n/a "
        # Escaped brackets for the bar containers
        self.update(
            f"CPU \\[{render_bar(snapshot.cpu_percent, 'green')}] {cpu}\n"
            f"Mem \\[{render_bar(snapshot.mem_percent, 'cyan')}] {mem}"
        )


class StatusPanel(Static):
    """Uptime and collector health."""

    DEFAULT_CSS = """
    StatusPanel {
        height: auto;
        padding: 1;
    }
    """

    def show(self, snapshot: Snapshot, interval: float) -> None:
        status = "[green]up[/green]" if snapshot.collector_up else "[red]down[/red]"
        self.update(
            f"Uptime: {format_uptime(snapshot.uptime_seconds, interval)}\n"
            f"Ticks: {snapshot.uptime_seconds}\n"
            f"Collector: {status}"
        )


class MetricsApp(App):
    """Dashboard showing the latest snapshot; owns the loop's lifetime."""

    TITLE = "hostmetrics"
    SUB_TITLE = "Host resource sampler"

    CSS = """
    Screen {
        layout: vertical;
    }

    #usage {
        width: 1fr;
    }

    #status {
        width: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, store: SnapshotStore, scheduler: SchedulingLoop, refresh_interval: float = 0.5) -> None:
        """Initialize the MetricsApp."""
        super().__init__()
        self._metrics_store = store
        self._scheduler = scheduler
        self._panel_refresh_interval = refresh_interval

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Horizontal(
            UsagePanel(id="usage"),
            StatusPanel(id="status"),
        )
        yield Footer()

    def on_mount(self) -> None:
        """Start the sampling loop and poll the store for new snapshots."""
        self._scheduler.start()
        self.refresh_panels()
        self.set_interval(self._panel_refresh_interval, self.refresh_panels)

    def refresh_panels(self) -> None:
        """Copy the current snapshot out of the store and redraw."""
        snapshot = self._metrics_store.current()
        self.query_one("#usage", UsagePanel).show(snapshot)
        self.query_one("#status", StatusPanel).show(snapshot, self._scheduler.interval)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._scheduler.stop()
        self.exit()
