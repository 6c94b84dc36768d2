"""Exception types for hostmetrics."""


class HostMetricsError(Exception):
    """Base class for hostmetrics errors."""


class CounterReadError(HostMetricsError):
    """A counter source could not be read or returned malformed data."""
