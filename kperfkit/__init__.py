"""Request validation, response metrics, reports and value helpers for benchmarking Kubernetes API servers."""

__version__ = "0.1.0"

__all__ = [
    "cliutils",
    "metrics",
    "report",
    "requests",
    "values",
]