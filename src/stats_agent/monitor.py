"""Sampling engine for stats-agent."""

import logging
import threading
import time
from collections.abc import Callable, Iterable
from enum import Enum
from queue import Queue

from stats_agent.config import MIN_POLL_RATE, TOP_PROCESSES, WARMUP_DELAY
from stats_agent.errors import WarmUpRequiredError
from stats_agent.handle import HandleState, MetricsHandle
from stats_agent.models import (
    DiskStats,
    NetStats,
    OsInfo,
    ProcessStats,
    Snapshot,
    mean_percent,
)
from stats_agent.probes import enumerate_disks, enumerate_network, read_os_info

log = logging.getLogger(__name__)


class OsPolicy(Enum):
    """When a snapshot carries the OS identity."""

    ALWAYS = "always"  # single-shot
    ONCE = "once"  # daemon: first snapshot only


def rank_processes(entries: Iterable[ProcessStats], limit: int = TOP_PROCESSES) -> list[ProcessStats]:
    """Top ``limit`` entries by CPU percent, descending; ties keep enumeration order."""
    return sorted(entries, key=lambda p: p.cpu_percent, reverse=True)[:limit]


class Sampler:
    """
    Builds snapshots from a shared ``MetricsHandle``.

    Refresh-then-read against the handle happens under its lock. Disk and
    network enumeration build their own state and run after the lock is
    released so a slow mount table does not block other callers.
    """

    def __init__(
        self,
        handle: MetricsHandle,
        *,
        top_n: int = TOP_PROCESSES,
        warmup_delay: float = WARMUP_DELAY,
        os_policy: OsPolicy = OsPolicy.ALWAYS,
        sleep: Callable[[float], None] = time.sleep,
        disk_probe: Callable[[], list[DiskStats]] = enumerate_disks,
        network_probe: Callable[[], list[NetStats]] = enumerate_network,
        os_probe: Callable[[], OsInfo] = read_os_info,
    ) -> None:
        """
        Initialize the Sampler.

        Args:
            handle: The process-wide metrics handle. Never copied.
            top_n: Number of processes kept in the ranking.
            warmup_delay: Seconds between the throw-away CPU refresh and the first sample.
            os_policy: Whether every snapshot or only the first carries OS identity.
            sleep: Blocking sleep used for the warm-up delay.
        """
        self._handle = handle
        self._top_n = top_n
        self._warmup_delay = warmup_delay
        self._os_policy = os_policy
        self._sleep = sleep
        self._disk_probe = disk_probe
        self._network_probe = network_probe
        self._os_probe = os_probe
        self._os_sent = False
        self._os_lock = threading.Lock()

    @property
    def handle(self) -> MetricsHandle:
        """Get the shared metrics handle."""
        return self._handle

    def warm_up(self, include_processes: bool = False) -> None:
        """
        Establish the CPU baseline before the first real sample.

        Performs one throw-away refresh and waits until ``warmup_delay`` has
        passed since it, so the OS accumulates another accounting tick. A
        caller that finds the baseline already taken by another sampler on
        the same handle waits out whatever is left of the delay. The process
        table is primed separately, the first time process detail is asked for.
        """
        with self._handle.lock:
            if self._handle.state is HandleState.WARMED and not include_processes:
                return
            if self._handle.primed_at() is None:
                self._handle.refresh_cpu()
            if include_processes and self._handle.primed_at(include_processes=True) is None:
                self._handle.refresh_processes()
            primed_at = self._handle.primed_at(include_processes)

        remaining = self._warmup_delay - (self._handle.clock() - primed_at)
        if remaining > 0:
            log.debug("warming up for %.2fs", remaining)
            self._sleep(remaining)

        with self._handle.lock:
            self._handle.mark_warmed()

    def sample(self, include_processes: bool = False, include_os: bool = False) -> Snapshot:
        """
        Take one snapshot.

        Raises:
            WarmUpRequiredError: if ``warm_up()`` has not run against the handle.
        """
        processes: list[ProcessStats] | None = None

        with self._handle.lock:
            if self._handle.state is not HandleState.WARMED:
                raise WarmUpRequiredError("CPU baseline missing or too recent; call warm_up() first")
            self._handle.refresh_memory()
            self._handle.refresh_cpu()
            cpu = self._handle.cpu_percents()
            memory = self._handle.memory()
            if include_processes:
                self._handle.refresh_processes()
                processes = self._handle.processes()

        disks = self._disk_probe()
        network = self._network_probe()

        ranked = None
        if processes is not None:
            ranked = tuple(rank_processes(processes, self._top_n))

        return Snapshot(
            cpu=tuple(cpu),
            cpu_avg=mean_percent(cpu),
            memory=memory,
            disks=tuple(disks),
            network=tuple(network),
            processes=ranked,
            os=self._os_probe() if include_os else None,
        )

    def next_snapshot(self, include_processes: bool = False) -> Snapshot:
        """Take a snapshot, attaching OS identity according to the policy."""
        with self._os_lock:
            include_os = self._os_policy is OsPolicy.ALWAYS or not self._os_sent
            snapshot = self.sample(include_processes=include_processes, include_os=include_os)
            self._os_sent = True
        return snapshot


class SamplerThread:
    """
    Runs a Sampler in a daemon thread and pushes snapshots to a Queue.

    Shares the sampler's handle with any foreground caller; the handle lock
    keeps the two from interleaving refreshes.
    """

    def __init__(
        self,
        sampler: Sampler,
        update_queue: Queue[Snapshot],
        poll_rate: float = 2.0,
        include_processes: bool = True,
    ) -> None:
        """
        Initialize the SamplerThread.

        Args:
            sampler: Sampler to drive.
            update_queue: Thread-safe queue to push snapshots to.
            poll_rate: How often to sample (in seconds). Default 2.0s.
            include_processes: Whether snapshots carry the process ranking.
        """
        self._sampler = sampler
        self._queue = update_queue
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._include_processes = include_processes
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def is_running(self) -> bool:
        """Check if the sampling thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SamplerThread",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                # Cheap once warmed; retried here if the first attempt failed
                self._sampler.warm_up(include_processes=self._include_processes)
                snapshot = self._sampler.next_snapshot(include_processes=self._include_processes)
                self._queue.put(snapshot)
            except Exception:
                # Keep the loop alive; the next tick is the retry
                log.exception("background sample failed")

            self._stop_event.wait(timeout=self._poll_rate)
