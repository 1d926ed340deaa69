"""stats-agent - live Textual viewer for snapshots."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Static

from stats_agent.config import DEFAULT_WATCH_INTERVAL
from stats_agent.models import DiskStats, NetStats, OsInfo, ProcessStats, Snapshot
from stats_agent.monitor import Sampler, SamplerThread


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def usage_bar(percent: float, color: str, width: int = 20) -> str:
    """Render a percentage as a fixed-width markup bar."""
    filled = min(int(percent / (100 / width)), width) if percent > 0 else 0
    return f"[{color}]█[/{color}]" * filled + "[dim]░[/dim]" * (width - filled)


class HeaderStats(Static):
    """Header widget showing CPU and memory statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: Snapshot | None = None
        self._os: OsInfo | None = None

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from a snapshot."""
        self._snapshot = snapshot
        if snapshot.os is not None:
            self._os = snapshot.os
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        if not self.is_mounted:
            return
        self.query_one("#cpu-info", Static).update(self._get_cpu_info())
        self.query_one("#mem-info", Static).update(self._get_mem_info())

    def _get_cpu_info(self) -> str:
        """Get CPU info display."""
        if self._snapshot is None or not self._snapshot.cpu:
            return "Loading CPU info..."
        lines = [
            f"CPU{i:<2} \\[{usage_bar(usage, 'green')}] {usage:6.2f}%"
            for i, usage in enumerate(self._snapshot.cpu)
        ]
        lines.append(f"Avg   \\[{usage_bar(self._snapshot.cpu_avg, 'green')}] {self._snapshot.cpu_avg:6.2f}%")
        return "\n".join(lines)

    def _get_mem_info(self) -> str:
        """Get memory info display."""
        if self._snapshot is None or self._snapshot.memory.total == 0:
            return "Loading memory info..."
        mem = self._snapshot.memory
        mem_percent = mem.used / mem.total * 100
        swap_percent = mem.swap_used / mem.swap_total * 100 if mem.swap_total > 0 else 0.0

        text = (
            f"Mem\\[{usage_bar(mem_percent, 'cyan')}] "
            f"{mem.used / 1024**3:.1f}G/{mem.total / 1024**3:.1f}G\n"
            f"Swp\\[{usage_bar(swap_percent, 'yellow')}] "
            f"{mem.swap_used / 1024**3:.1f}G/{mem.swap_total / 1024**3:.1f}G"
        )
        if self._os is not None:
            text += f"\nOS: {self._os.name} {self._os.version} ({self._os.kernel}, {self._os.arch})"
        return text


class DeviceSummary(Static):
    """One-line-per-device summary of disks and network interfaces."""

    DEFAULT_CSS = """
    DeviceSummary {
        height: auto;
        padding: 0 1;
    }
    """

    def update_devices(self, disks: tuple[DiskStats, ...], network: tuple[NetStats, ...]) -> None:
        """Render the current disk and interface lists."""
        lines = [
            f"Disk {d.name}: {format_bytes(d.total - d.available)} used of {format_bytes(d.total)}"
            for d in disks
        ]
        lines.extend(
            f"Net  {n.interface}: rx {format_bytes(n.rx_bytes)} tx {format_bytes(n.tx_bytes)}"
            f" err {n.rx_errors}/{n.tx_errors}"
            for n in network
        )
        self.update("\n".join(lines) or "No devices")


class ProcessTable(Container):
    """Container for the top-process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=8)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("RES", key="rss", width=8)
        table.add_column("Name", key="name", width=20)
        table.add_column("Executable", key="exe")

    def update_processes(self, processes: tuple[ProcessStats, ...]) -> None:
        """
        Replace the table rows with the current ranking.

        The ranking is at most a handful of rows and its order changes every
        tick, so rows are rebuilt rather than updated in place.
        """
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for proc in processes:
            table.add_row(
                str(proc.pid),
                f"{proc.cpu_percent:6.2f}",
                format_bytes(proc.memory_bytes),
                proc.name[:20],
                proc.exe_path[:60],
                key=str(proc.pid),
            )


class StatsApp(App):
    """Live viewer driven by a background SamplerThread."""

    TITLE = "stats-agent"
    SUB_TITLE = "System Metrics"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, sampler: Sampler, poll_rate: float = DEFAULT_WATCH_INTERVAL) -> None:
        """Initialize the StatsApp."""
        super().__init__()
        self._update_queue: Queue[Snapshot] = Queue()
        self._sampler_thread = SamplerThread(sampler, self._update_queue, poll_rate=poll_rate)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield DeviceSummary(id="devices")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start sampling when the app is mounted."""
        self._sampler_thread.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self._update_ui(snapshot)

    def _update_ui(self, snapshot: Snapshot) -> None:
        """Update the UI with the new snapshot."""
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        self.query_one("#devices", DeviceSummary).update_devices(snapshot.disks, snapshot.network)
        self.query_one(ProcessTable).update_processes(snapshot.processes or ())

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._sampler_thread.stop()
        self.exit()
