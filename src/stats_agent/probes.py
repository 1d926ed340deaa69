"""Stateless probes: disks, network interfaces and OS identity."""

import functools
import logging
import platform

import psutil

from stats_agent.models import DiskStats, NetStats, OsInfo

log = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def enumerate_disks() -> list[DiskStats]:
    """
    List mounted volumes with their capacity.

    Builds fresh state on every call. Mounts that cannot be stat'ed and
    volumes reporting zero capacity are skipped.
    """
    disks: list[DiskStats] = []
    for part in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError:
            # Unmounted between listing and stat, or not readable
            log.debug("skipping mount %s", part.mountpoint)
            continue
        if usage.total <= 0:
            continue
        disks.append(
            DiskStats(
                name=part.device or part.mountpoint,
                available=usage.free,
                total=usage.total,
            )
        )
    return disks


def enumerate_network() -> list[NetStats]:
    """List interfaces with cumulative traffic counters, skipping idle ones."""
    interfaces: list[NetStats] = []
    for name, counters in psutil.net_io_counters(pernic=True).items():
        if counters.bytes_recv == 0 and counters.bytes_sent == 0:
            continue
        interfaces.append(
            NetStats(
                interface=name,
                rx_bytes=counters.bytes_recv,
                tx_bytes=counters.bytes_sent,
                rx_packets=counters.packets_recv,
                tx_packets=counters.packets_sent,
                rx_errors=counters.errin,
                tx_errors=counters.errout,
            )
        )
    return interfaces


def _os_name_and_version() -> tuple[str, str]:
    system = platform.system()
    if system == "Linux":
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            return system, UNKNOWN
        return release.get("NAME", system), release.get("VERSION_ID", UNKNOWN)
    if system == "Darwin":
        return system, platform.mac_ver()[0] or UNKNOWN
    return system or UNKNOWN, platform.version() or UNKNOWN


@functools.cache
def read_os_info() -> OsInfo:
    """Read the static OS identity once; it does not change for the process lifetime."""
    name, version = _os_name_and_version()
    return OsInfo(
        name=name,
        kernel=platform.release() or UNKNOWN,
        version=version,
        arch=platform.machine() or UNKNOWN,
    )
