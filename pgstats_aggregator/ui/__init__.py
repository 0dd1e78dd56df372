"""
UI module - Rich console output.

Provides:
- ConsoleUI: cycle results, diagnostic reports, errors
- setup_logging: RichHandler on the root logger
"""

from .console import ConsoleUI, setup_logging

__all__ = [
    "ConsoleUI",
    "setup_logging",
]
