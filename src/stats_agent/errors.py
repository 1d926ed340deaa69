"""Exceptions raised by stats-agent."""


class StatsAgentError(Exception):
    """Base error for stats-agent."""


class WarmUpRequiredError(StatsAgentError):
    """A snapshot was requested before the CPU baseline was established."""
