"""Configuration management for prototester."""

import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Dict, Any, Union

import yaml

from .errors import ConfigError
from .models.run_config import TestConfig, DEFAULT_TARGET4, DEFAULT_TARGET6, DEFAULT_DNS_QUERY


_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, None: 1.0}


def parse_duration(value: Union[int, float, str]) -> float:
    """
    Parse a duration into seconds.

    Numbers are seconds; strings may carry an ms, s or m suffix
    ("500ms", "1s", "2m").
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    match = _DURATION.match(str(value))
    if not match:
        raise ConfigError(f"invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _UNIT_SECONDS[unit]


@dataclass
class DefaultsConfig:
    """Default probe settings."""
    target4: str = DEFAULT_TARGET4
    target6: str = DEFAULT_TARGET6
    port: int = 53
    count: int = 10
    interval: float = 1.0  # seconds
    timeout: float = 3.0  # seconds
    icmp_size: int = 64
    dns_protocol: str = "udp"
    dns_query: str = DEFAULT_DNS_QUERY

    def to_test_config(self, **overrides) -> TestConfig:
        """Build a validated TestConfig, with overrides taking precedence."""
        config = TestConfig(
            target4=self.target4,
            target6=self.target6,
            port=self.port,
            count=self.count,
            interval=self.interval,
            timeout=self.timeout,
            icmp_size=self.icmp_size,
            dns_protocol=self.dns_protocol,
            dns_query=self.dns_query,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(config, **overrides).validate()


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: Optional[str] = None


@dataclass
class ExportConfig:
    """Export configuration."""
    format: str = "text"  # text, json
    output_dir: str = "./reports"


@dataclass
class ProtoTesterConfig:
    """Main configuration container."""
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProtoTesterConfig":
        """Create config from dictionary."""
        config = cls()

        if "defaults" in data:
            d = data["defaults"] or {}
            base = DefaultsConfig()
            try:
                config.defaults = DefaultsConfig(
                    target4=d.get("target4", base.target4),
                    target6=d.get("target6", base.target6),
                    port=int(d.get("port", base.port)),
                    count=int(d.get("count", base.count)),
                    interval=parse_duration(d.get("interval", base.interval)),
                    timeout=parse_duration(d.get("timeout", base.timeout)),
                    icmp_size=int(d.get("icmp_size", base.icmp_size)),
                    dns_protocol=str(d.get("dns_protocol", base.dns_protocol)),
                    dns_query=d.get("dns_query", base.dns_query),
                )
            except (TypeError, ValueError) as e:
                raise ConfigError(f"invalid defaults section: {e}") from e

        if "logging" in data:
            log = data["logging"] or {}
            config.logging = LoggingConfig(
                level=str(log.get("level", "WARNING")).upper(),
                file=log.get("file"),
            )

        if "export" in data:
            exp = data["export"] or {}
            config.export = ExportConfig(
                format=exp.get("format", "text"),
                output_dir=exp.get("output_dir", "./reports"),
            )

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "ProtoTesterConfig":
        """Load config from YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read config file {path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ProtoTesterConfig":
        """Load config from file or use defaults."""
        if path and not os.path.exists(path):
            raise ConfigError(f"config file not found: {path}")

        search_paths = [
            path,
            "prototester.yaml",
            os.path.expanduser("~/.config/prototester/config.yaml"),
            "/etc/prototester/config.yaml",
        ]

        for config_path in search_paths:
            if config_path and os.path.exists(config_path):
                return cls.from_yaml(config_path)

        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "defaults": {
                "target4": self.defaults.target4,
                "target6": self.defaults.target6,
                "port": self.defaults.port,
                "count": self.defaults.count,
                "interval": self.defaults.interval,
                "timeout": self.defaults.timeout,
                "icmp_size": self.defaults.icmp_size,
                "dns_protocol": self.defaults.dns_protocol,
                "dns_query": self.defaults.dns_query,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
            },
            "export": {
                "format": self.export.format,
                "output_dir": self.export.output_dir,
            },
        }

    def save_yaml(self, path: str) -> None:
        """Save config to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)
