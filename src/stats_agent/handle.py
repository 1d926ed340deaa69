"""Stateful handle over the OS accounting interfaces."""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

import psutil

from stats_agent.models import MemoryStats, ProcessStats, round_percent

log = logging.getLogger(__name__)


class HandleState(Enum):
    """Whether the handle has a CPU baseline old enough to compute deltas against."""

    COLD = "cold"  # no baseline
    WARMING = "warming"  # baseline taken, warm-up delay still running
    WARMED = "warmed"


def _busy_and_total(times: Any) -> tuple[float, float]:
    """Split one cpu_times() reading into busy and total seconds."""
    total = sum(times)
    # guest time is already accounted in user/nice on Linux
    total -= getattr(times, "guest", 0.0) + getattr(times, "guest_nice", 0.0)
    idle = times.idle + getattr(times, "iowait", 0.0)
    return total - idle, total


def busy_percent(before: Any, after: Any) -> float:
    """CPU busy percentage between two cpu_times() readings, clamped to 0-100."""
    busy_before, total_before = _busy_and_total(before)
    busy_after, total_after = _busy_and_total(after)
    total_delta = total_after - total_before
    if total_delta <= 0:
        return 0.0
    percent = (busy_after - busy_before) / total_delta * 100.0
    return min(100.0, max(0.0, percent))


class MetricsHandle:
    """
    Long-lived wrapper around psutil for CPU, memory and the process table.

    Every ``refresh_*`` call mutates the baselines that the *next* call's
    readings are computed against, so the handle is created once per process
    and shared by reference. Hold ``lock`` across a refresh and the reads that
    follow it.

    The first ``refresh_cpu()`` has no baseline and reports 0.0 for every
    core; it moves the handle from COLD to WARMING. The handle only becomes
    WARMED through ``mark_warmed()``, once the warm-up delay has elapsed.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize an empty, cold handle.

        Args:
            clock: Monotonic time source used to stamp when baselines were taken.
        """
        self.lock = threading.Lock()
        self.clock = clock
        self._state = HandleState.COLD
        self._cpu_primed_at: float | None = None
        self._processes_primed_at: float | None = None
        self._last_cpu_times: list[Any] = []
        self._cpu_percents: list[float] = []
        self._memory = MemoryStats(total=0, used=0, swap_total=0, swap_used=0)
        self._procs: dict[int, psutil.Process] = {}
        self._process_entries: list[ProcessStats] = []

    @property
    def state(self) -> HandleState:
        """Get the warm-up state."""
        return self._state

    def primed_at(self, include_processes: bool = False) -> float | None:
        """
        Clock time of the newest baseline a sample depends on.

        Returns None while the CPU baseline, or the process baseline when
        ``include_processes`` is set, has not been taken yet.
        """
        if self._cpu_primed_at is None:
            return None
        if not include_processes:
            return self._cpu_primed_at
        if self._processes_primed_at is None:
            return None
        return max(self._cpu_primed_at, self._processes_primed_at)

    def mark_warmed(self) -> None:
        """Record that the warm-up delay has elapsed since the CPU baseline."""
        if self._state is HandleState.WARMING:
            self._state = HandleState.WARMED

    def refresh_cpu(self) -> None:
        """Read per-core CPU times and compute usage since the previous call."""
        current = psutil.cpu_times(percpu=True)
        previous = self._last_cpu_times
        if len(previous) != len(current):
            # No baseline yet, or the set of online cores changed
            self._cpu_percents = [0.0] * len(current)
        else:
            self._cpu_percents = [
                round_percent(busy_percent(before, after))
                for before, after in zip(previous, current)
            ]
        self._last_cpu_times = current
        if self._state is HandleState.COLD:
            self._cpu_primed_at = self.clock()
            self._state = HandleState.WARMING

    def refresh_memory(self) -> None:
        """Read RAM and swap usage."""
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
        self._memory = MemoryStats(
            total=mem.total,
            used=mem.total - mem.available,
            swap_total=swap.total,
            swap_used=swap.used,
        )

    def refresh_processes(self) -> None:
        """
        Enumerate the process table and compute per-process CPU usage.

        One ``psutil.Process`` is retained per pid so its CPU percentage is a
        delta since the previous refresh. Processes that exit or deny access
        mid-read are left out of the result.
        """
        alive: dict[int, psutil.Process] = {}
        entries: list[ProcessStats] = []

        for pid in psutil.pids():
            proc = self._procs.get(pid)
            try:
                if proc is None or not proc.is_running():
                    # New pid, or the pid was reused by another process
                    proc = psutil.Process(pid)
                with proc.oneshot():
                    name = proc.name()
                    rss = proc.memory_info().rss
                    cpu = proc.cpu_percent(interval=None)
                    exe = self._exe_path(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                log.debug("skipping pid %s", pid)
                continue

            alive[pid] = proc
            entries.append(
                ProcessStats(
                    pid=pid,
                    name=name,
                    exe_path=exe,
                    memory_bytes=rss,
                    cpu_percent=round_percent(cpu),
                )
            )

        self._procs = alive
        self._process_entries = entries
        if self._processes_primed_at is None:
            self._processes_primed_at = self.clock()

    @staticmethod
    def _exe_path(proc: psutil.Process) -> str:
        try:
            return proc.exe() or ""
        except (psutil.AccessDenied, psutil.ZombieProcess):
            # Zombies keep their name and pid but no longer have an executable
            return ""

    def cpu_percents(self) -> list[float]:
        """Per-core usage from the last ``refresh_cpu()``, in core order."""
        return list(self._cpu_percents)

    def memory(self) -> MemoryStats:
        """Memory usage from the last ``refresh_memory()``."""
        return self._memory

    def processes(self) -> list[ProcessStats]:
        """Process entries from the last ``refresh_processes()``, in enumeration order."""
        return list(self._process_entries)

    def tracked_pids(self) -> int:
        """Number of processes whose CPU baseline is retained."""
        return len(self._procs)
