"""hostmetrics - host CPU/memory sampler with a Prometheus text endpoint."""

__version__ = "0.1.0"
