"""Command-line entry point for stats-agent."""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import TextIO

from stats_agent.config import DEFAULT_INTERVAL, DEFAULT_WATCH_INTERVAL, parse_interval
from stats_agent.emitter import Emitter, run_daemon
from stats_agent.handle import MetricsHandle
from stats_agent.monitor import OsPolicy, Sampler

log = logging.getLogger(__name__)


def agent_version() -> str:
    try:
        return version("stats-agent")
    except PackageNotFoundError:
        return "unknown"


def setup_logging(level: str = "WARNING") -> None:
    """Send diagnostics to stderr so stdout carries only metrics records."""
    level_num = getattr(logging, level.upper(), logging.WARNING)

    root = logging.getLogger()
    root.setLevel(level_num)
    root.handlers.clear()

    console = logging.StreamHandler(stream=sys.stderr)
    console.setLevel(level_num)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(console)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="stats-agent",
        description="Collect system stats and output them as JSON.",
        epilog="Without a command, outputs stats once as JSON.",
    )
    p.add_argument("--log-level", type=str, default="WARNING")
    sub = p.add_subparsers(dest="command", metavar="command")

    daemon = sub.add_parser(
        "daemon",
        help=f"Run as daemon, output JSON every N seconds (default: {DEFAULT_INTERVAL})",
    )
    daemon.add_argument("interval", nargs="?", default=None)
    daemon.add_argument("--processes", action="store_true", help="Include top processes")

    sub.add_parser("json", help="Output stats once as JSON")
    sub.add_parser("json-processes", help="Output stats with top processes")

    watch = sub.add_parser("watch", help="Live view in the terminal")
    watch.add_argument("interval", nargs="?", default=None)

    sub.add_parser("version", help="Show version")
    return p.parse_args(argv)


def json_once(include_processes: bool, stream: TextIO | None = None) -> int:
    """Emit one warmed-up, pretty-printed snapshot. Returns the exit status."""
    sampler = Sampler(MetricsHandle(), os_policy=OsPolicy.ALWAYS)
    sampler.warm_up(include_processes=include_processes)
    snapshot = sampler.next_snapshot(include_processes=include_processes)
    return 0 if Emitter(stream, pretty=True).emit(snapshot) else 1


def daemon_mode(interval: int, include_processes: bool = False, stream: TextIO | None = None) -> int:
    """Emit compact snapshots every ``interval`` seconds until interrupted."""
    sampler = Sampler(MetricsHandle(), os_policy=OsPolicy.ONCE)
    try:
        run_daemon(sampler, Emitter(stream), interval, include_processes=include_processes)
    except KeyboardInterrupt:
        log.info("interrupted")
        return 130
    return 0


def watch_mode(interval: int) -> int:
    from stats_agent.app import StatsApp

    app = StatsApp(Sampler(MetricsHandle(), os_policy=OsPolicy.ONCE), poll_rate=interval)
    app.run()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level)

    if args.command == "version":
        print(f"stats-agent v{agent_version()}")
        return 0
    if args.command == "daemon":
        return daemon_mode(parse_interval(args.interval, DEFAULT_INTERVAL), args.processes)
    if args.command == "watch":
        return watch_mode(parse_interval(args.interval, DEFAULT_WATCH_INTERVAL))
    return json_once(include_processes=args.command == "json-processes")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
