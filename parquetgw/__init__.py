"""Selectors, configuration, metrics, query parameters, responses and store API helpers."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "convertopts",
    "grpcapi",
    "grpcconv",
    "httpapi",
    "labels",
    "metrics",
    "params",
]