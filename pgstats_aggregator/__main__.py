"""
Entry point for running pgstats_aggregator as a module.

Usage:
    python -m pgstats_aggregator --database-url postgresql://localhost/app run
"""

from .cli import main

if __name__ == "__main__":
    main()
