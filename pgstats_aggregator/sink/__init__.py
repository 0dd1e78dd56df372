"""
Sink module - Destinations for metric batches.

Provides:
- MetricSink: the submit() contract
- LibratoSink: Librato metrics API over HTTP
- ConsoleSink: dry-run output to the terminal
"""

from .base import MetricSink
from .librato import LibratoSink, to_payload, DEFAULT_API_URL
from .console import ConsoleSink

__all__ = [
    "MetricSink",
    "LibratoSink",
    "ConsoleSink",
    "to_payload",
    "DEFAULT_API_URL",
]
