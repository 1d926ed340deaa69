"""Tests for stats-agent data models."""

import dataclasses

import pytest

from stats_agent.models import (
    DiskStats,
    MemoryStats,
    NetStats,
    OsInfo,
    ProcessStats,
    Snapshot,
    mean_percent,
    round_percent,
)


def make_snapshot(**overrides) -> Snapshot:
    fields = {
        "cpu": (10.0, 20.5),
        "cpu_avg": 15.25,
        "memory": MemoryStats(total=16 * 1024**3, used=8 * 1024**3, swap_total=1024, swap_used=0),
        "disks": (DiskStats(name="/dev/sda1", available=100, total=500),),
        "network": (
            NetStats(
                interface="eth0",
                rx_bytes=1000,
                tx_bytes=2000,
                rx_packets=10,
                tx_packets=20,
                rx_errors=0,
                tx_errors=1,
            ),
        ),
    }
    fields.update(overrides)
    return Snapshot(**fields)


class TestRounding:
    """Tests for percentage rounding."""

    def test_rounds_to_two_decimals(self):
        """Test values are rounded, not truncated."""
        assert round_percent(12.3456) == 12.35
        assert round_percent(99.994) == 99.99
        assert round_percent(99.996) == 100.0

    def test_half_rounds_up(self):
        """Test a half hundredth rounds away from zero."""
        assert round_percent(0.125) == 0.13
        assert round_percent(50.0) == 50.0

    def test_zero(self):
        """Test zero stays zero."""
        assert round_percent(0.0) == 0.0

    def test_mean_of_empty_is_zero(self):
        """Test the mean of no cores is 0.0."""
        assert mean_percent([]) == 0.0

    def test_mean_is_rounded(self):
        """Test the mean is rounded to two decimals."""
        assert mean_percent([10.0, 20.0, 20.0]) == 16.67
        assert mean_percent((33.33,)) == 33.33


class TestSnapshot:
    """Tests for the Snapshot dataclass and its wire record."""

    def test_snapshot_is_frozen(self):
        """Test that Snapshot is immutable (frozen)."""
        snapshot = make_snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.cpu_avg = 1.0

    def test_snapshot_uses_slots(self):
        """Test Snapshot uses __slots__ for memory efficiency."""
        assert not hasattr(make_snapshot(), "__dict__")

    def test_absent_fields_are_omitted(self):
        """Test processes and os are left out when absent."""
        record = make_snapshot().to_dict()

        assert set(record) == {"cpu", "cpu_avg", "memory", "disks", "network"}

    def test_empty_process_list_is_kept(self):
        """Test a requested but empty process list serializes as []."""
        record = make_snapshot(processes=()).to_dict()

        assert record["processes"] == []

    def test_record_shape(self):
        """Test the record carries the expected keys and values."""
        os_info = OsInfo(name="Ubuntu", kernel="6.5.0", version="22.04", arch="x86_64")
        record = make_snapshot(os=os_info).to_dict()

        assert record["cpu"] == [10.0, 20.5]
        assert record["cpu_avg"] == 15.25
        assert record["memory"] == {
            "total": 16 * 1024**3,
            "used": 8 * 1024**3,
            "swap_total": 1024,
            "swap_used": 0,
        }
        assert record["disks"] == [{"name": "/dev/sda1", "available": 100, "total": 500}]
        assert record["network"][0]["interface"] == "eth0"
        assert record["network"][0]["tx_errors"] == 1
        assert record["os"] == {
            "name": "Ubuntu",
            "kernel": "6.5.0",
            "version": "22.04",
            "arch": "x86_64",
        }


class TestProcessStats:
    """Tests for ProcessStats."""

    def test_process_stats_creation(self):
        """Test ProcessStats dataclass creation."""
        proc = ProcessStats(
            pid=123,
            name="test_process",
            exe_path="/usr/bin/test",
            memory_bytes=1024000,
            cpu_percent=50.0,
        )

        assert proc.pid == 123
        assert proc.name == "test_process"
        assert proc.exe_path == "/usr/bin/test"
        assert proc.memory_bytes == 1024000
        assert proc.cpu_percent == 50.0

    def test_wire_keys(self):
        """Test process entries use the short keys downstream readers expect."""
        proc = ProcessStats(pid=1, name="init", exe_path="/sbin/init", memory_bytes=10000, cpu_percent=0.1)

        assert proc.to_dict() == {
            "pid": 1,
            "name": "init",
            "exe": "/sbin/init",
            "memory": 10000,
            "cpu": 0.1,
        }
