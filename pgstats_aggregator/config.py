"""
Configuration management for pgstats-aggregator.

Supports:
- TOML config files
- Environment variables
- Command-line overrides
- Sensible defaults

Priority (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Config file
4. Defaults
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any, List, Mapping
from urllib.parse import urlparse

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib

from .protocol.errors import ConfigError
from .protocol.sample import DEFAULT_NAMESPACE
from .sink.librato import DEFAULT_API_URL, DEFAULT_TIMEOUT


# Five-minute collection interval
DEFAULT_INTERVAL = 300
DEFAULT_SOURCE = "pg-stats-aggregator"

# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / "pgstats.toml",
    Path.home() / ".pgstats" / "config.toml",
    Path.home() / ".config" / "pgstats" / "config.toml",
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PollerConfig:
    """Options for one polling context. Validated at construction."""
    interval: int = DEFAULT_INTERVAL          # Seconds; bucketing and scheduling
    source: str = DEFAULT_SOURCE              # Tag attached to every sample
    namespace: str = DEFAULT_NAMESPACE        # Metric name prefix
    initial_counters: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise ConfigError(f"interval must be an integer number of seconds, got {self.interval!r}")
        if self.interval <= 0:
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if not self.source:
            raise ConfigError("source label must not be empty")
        if not self.namespace:
            raise ConfigError("namespace must not be empty")
        for name, value in self.initial_counters.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"initial counter {name} must be a non-negative integer, got {value!r}")


@dataclass
class LibratoConfig:
    """Librato API credentials and endpoint."""
    user: Optional[str] = None
    token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        return bool(self.user and self.token)


@dataclass
class SourceConfig:
    """A database to poll."""
    name: str
    url: str

    @classmethod
    def from_url(cls, url: str) -> "SourceConfig":
        """Label the source with the database name from the URL path."""
        parsed = urlparse(url)
        name = parsed.path.lstrip("/") or parsed.hostname or DEFAULT_SOURCE
        return cls(name=name, url=url)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""
    poller: PollerConfig = field(default_factory=PollerConfig)
    librato: LibratoConfig = field(default_factory=LibratoConfig)
    sources: List[SourceConfig] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    dry_run: bool = False

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load configuration from file.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.

        Returns:
            Config instance with loaded values
        """
        config = cls()

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        return config

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "poller" in data:
            poll = data["poller"]
            config.poller = PollerConfig(
                interval=poll.get("interval", config.poller.interval),
                source=poll.get("source", config.poller.source),
                namespace=poll.get("namespace", config.poller.namespace),
                initial_counters=dict(poll.get("initial_counters", {})),
            )

        if "librato" in data:
            lib = data["librato"]
            config.librato = LibratoConfig(
                user=lib.get("user") or None,
                token=lib.get("token") or None,
                api_url=lib.get("api_url", config.librato.api_url),
                timeout=lib.get("timeout", config.librato.timeout),
            )

        for entry in data.get("sources", []):
            if not entry.get("url"):
                raise ConfigError("Every [[sources]] entry needs a url")
            if "name" in entry:
                config.sources.append(SourceConfig(name=entry["name"], url=entry["url"]))
            else:
                config.sources.append(SourceConfig.from_url(entry["url"]))

        if "logging" in data:
            config.logging = LoggingConfig(
                level=str(data["logging"].get("level", config.logging.level)).upper(),
            )

        return config

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Override config values from environment variables.

        Every variable whose name contains DATABASE_URL adds a source.
        """
        env = os.environ if environ is None else environ

        if env.get("LIBRATO_USER"):
            self.librato.user = env["LIBRATO_USER"]
        if env.get("LIBRATO_TOKEN"):
            self.librato.token = env["LIBRATO_TOKEN"]
        if env.get("LIBRATO_API_URL"):
            self.librato.api_url = env["LIBRATO_API_URL"]

        if env.get("PGSTATS_INTERVAL"):
            raw = env["PGSTATS_INTERVAL"]
            try:
                interval = int(raw)
            except ValueError:
                raise ConfigError(f"PGSTATS_INTERVAL must be an integer, got {raw!r}") from None
            self.poller = replace(self.poller, interval=interval)

        if env.get("PGSTATS_LOG_LEVEL"):
            self.logging.level = env["PGSTATS_LOG_LEVEL"].upper()

        for key in sorted(k for k in env if "DATABASE_URL" in k):
            if env[key]:
                self._add_source(SourceConfig.from_url(env[key]))

        return self

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping file/env values).
        """
        if getattr(args, "interval", None) is not None:
            self.poller = replace(self.poller, interval=args.interval)
        if getattr(args, "namespace", None):
            self.poller = replace(self.poller, namespace=args.namespace)

        for url in getattr(args, "database_url", None) or []:
            self._add_source(SourceConfig.from_url(url))

        if getattr(args, "log_level", None):
            self.logging.level = args.log_level.upper()
        if getattr(args, "dry_run", None):
            self.dry_run = True

        return self

    def _add_source(self, source: SourceConfig):
        if any(existing.url == source.url for existing in self.sources):
            return
        self.sources.append(source)

    def poller_config_for(self, source: SourceConfig) -> PollerConfig:
        """Poller options for one source (own label, own initial counters copy)."""
        return replace(
            self.poller,
            source=source.name,
            initial_counters=dict(self.poller.initial_counters),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.dry_run:
            if not self.librato.user:
                errors.append("Librato user not set. Set LIBRATO_USER environment variable")
            if not self.librato.token:
                errors.append("Librato token not set. Set LIBRATO_TOKEN environment variable")

        if not self.sources:
            errors.append("No database configured. Set DATABASE_URL or pass --database-url")

        names = [s.name for s in self.sources]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        for name in duplicates:
            errors.append(f"Duplicate source label: {name}")

        if self.logging.level not in LOG_LEVELS:
            errors.append(f"Unknown log level: {self.logging.level}")

        if self.librato.timeout <= 0:
            errors.append("Librato timeout must be positive")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"Interval: {self.poller.interval}s")
        lines.append(f"Namespace: {self.poller.namespace}")
        if self.dry_run:
            lines.append("Sink: console (dry run)")
        else:
            lines.append(f"Sink: Librato {self.librato.api_url} as {self.librato.user or '(unset)'}")

        for source in self.sources:
            parsed = urlparse(source.url)
            lines.append(f"Source: {source.name} ({parsed.hostname or 'local'}:{parsed.port or 5432})")

        return "\n".join(lines)


EXAMPLE_CONFIG = """# pgstats-aggregator configuration

[poller]
interval = 300          # seconds between polls, also the timestamp bucket
namespace = "postgres"  # metric names become "postgres.<metric>"

[librato]
# Prefer LIBRATO_USER / LIBRATO_TOKEN environment variables
user = ""
token = ""

[logging]
level = "INFO"

# One table per database; the label defaults to the database name
# [[sources]]
# url = "postgresql://postgres@localhost:5432/app"
"""


def create_example_config(path: str = "pgstats.toml") -> Path:
    """Create example config file."""
    target = Path(path)

    if target.exists():
        raise FileExistsError(f"Config file already exists: {path}")

    target.write_text(EXAMPLE_CONFIG)
    return target
