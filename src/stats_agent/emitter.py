"""Snapshot output: JSON emitter and the daemon loop."""

import json
import logging
import sys
import time
from collections.abc import Callable
from typing import TextIO

from stats_agent.models import Snapshot
from stats_agent.monitor import Sampler

log = logging.getLogger(__name__)


class Emitter:
    """
    Writes one JSON record per snapshot to a stream.

    Pretty mode is indented for humans; compact mode keeps each record on a
    single line for line-oriented consumers. Every record is flushed.
    """

    def __init__(self, stream: TextIO | None = None, pretty: bool = False) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._pretty = pretty

    def encode(self, snapshot: Snapshot) -> str:
        if self._pretty:
            return json.dumps(snapshot.to_dict(), indent=2, allow_nan=False)
        return json.dumps(snapshot.to_dict(), separators=(",", ":"), allow_nan=False)

    def emit(self, snapshot: Snapshot) -> bool:
        """
        Serialize and write one snapshot.

        Returns False, writing nothing, if the snapshot cannot be encoded.
        """
        try:
            record = self.encode(snapshot)
        except (TypeError, ValueError) as e:
            log.error("Error serializing stats: %s", e)
            return False
        self._stream.write(record + "\n")
        self._stream.flush()
        return True


def run_daemon(
    sampler: Sampler,
    emitter: Emitter,
    interval: float,
    *,
    include_processes: bool = False,
    max_ticks: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Warm up once, then sample, emit and sleep forever.

    Tick spacing is ``interval`` plus the sampling cost; there is no drift
    correction and no catch-up after an overrun. ``max_ticks`` bounds the loop
    for embedding callers. Returns the number of records emitted.
    """
    sampler.warm_up(include_processes=include_processes)
    log.info("daemon started, interval=%ss", interval)

    ticks = 0
    emitted = 0
    while max_ticks is None or ticks < max_ticks:
        snapshot = sampler.next_snapshot(include_processes=include_processes)
        if emitter.emit(snapshot):
            emitted += 1
        ticks += 1
        if max_ticks is not None and ticks >= max_ticks:
            break
        sleep(interval)
    return emitted
