"""Volley - stress-test harness with a retry, failover and deferred-timing core."""

__version__ = "0.1.0"
