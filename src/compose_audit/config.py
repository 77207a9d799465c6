"""Configuration for the compose analyzer."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from compose_audit.models import Severity
from compose_audit.rules.registry import get_registry

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "COMPOSE_AUDIT_LOG_LEVEL"
SEVERITY_ENV = "COMPOSE_AUDIT_SEVERITY"

DEFAULT_CONFIG_FILES = (".compose-audit.yaml", ".compose-audit.yml")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a configuration value or file is invalid."""


@dataclass
class AnalyzerConfig:
    """Settings for an analysis run."""

    # Minimum severity included in reports (patching ignores it)
    severity_threshold: Severity = Severity.LOW

    # Rule selection: None runs every registered rule
    enabled_rules: Optional[list[str]] = None
    disabled_rules: list[str] = field(default_factory=list)

    # Value inserted for services without a user
    hardening_user: str = "1000:1000"

    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check rule IDs and log level against known values.

        Raises:
            ConfigError: If a value is not recognized.
        """
        self.severity_threshold = _parse_severity(self.severity_threshold)

        self.enabled_rules = _parse_rule_list(self.enabled_rules, "enabled_rules")
        self.disabled_rules = _parse_rule_list(self.disabled_rules, "disabled_rules") or []

        known = set(get_registry().rule_ids)
        for rule_id in (self.enabled_rules or []) + self.disabled_rules:
            if rule_id not in known:
                raise ConfigError(f"Unknown rule ID: {rule_id}")

        level = str(self.log_level).upper()
        if level not in _LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.log_level}")
        self.log_level = level

        if not self.hardening_user:
            raise ConfigError("hardening_user must not be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalyzerConfig":
        """Create config from dictionary, falling back to environment variables."""
        return cls(
            severity_threshold=_parse_severity(
                data.get("severity_threshold") or os.environ.get(SEVERITY_ENV) or "low"
            ),
            enabled_rules=data.get("enabled_rules"),
            disabled_rules=data.get("disabled_rules"),
            hardening_user=str(data.get("hardening_user", "1000:1000")),
            log_level=data.get("log_level") or os.environ.get(LOG_LEVEL_ENV) or "WARNING",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "severity_threshold": self.severity_threshold.value,
            "enabled_rules": self.enabled_rules,
            "disabled_rules": self.disabled_rules,
            "hardening_user": self.hardening_user,
            "log_level": self.log_level,
        }


def _parse_rule_list(value: Any, key: str) -> Optional[list[str]]:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{key} must be a list of rule IDs, got {type(value).__name__}")
    return [str(rule_id) for rule_id in value]


def _parse_severity(value: Any) -> Severity:
    if isinstance(value, Severity):
        return value
    try:
        return Severity.from_string(str(value))
    except ValueError:
        raise ConfigError(
            f"Invalid severity: {value}. Use 'critical', 'high', 'medium', or 'low'."
        ) from None


def load_config(path: Optional[Path] = None) -> AnalyzerConfig:
    """Load configuration from a YAML file.

    Without a path, the default config file names are looked up in the
    current directory; if none exists, defaults (plus environment) are used.

    Args:
        path: Explicit config file.

    Returns:
        AnalyzerConfig instance.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping.
    """
    if path is None:
        for name in DEFAULT_CONFIG_FILES:
            candidate = Path.cwd() / name
            if candidate.is_file():
                path = candidate
                break
        else:
            return AnalyzerConfig.from_dict({})

    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.debug(f"Loaded config from {path}")
    return AnalyzerConfig.from_dict(data)


def create_config(
    severity_threshold: str = "low",
    enabled_rules: Optional[list[str]] = None,
    disabled_rules: Optional[list[str]] = None,
    **kwargs: Any,
) -> AnalyzerConfig:
    """Convenience function to create an analyzer configuration.

    Args:
        severity_threshold: Minimum severity to report.
        enabled_rules: Rule IDs to run (None = all).
        disabled_rules: Rule IDs to skip.
        **kwargs: Additional configuration options.

    Returns:
        AnalyzerConfig instance.
    """
    config_dict = {
        "severity_threshold": severity_threshold,
        "enabled_rules": enabled_rules,
        "disabled_rules": disabled_rules or [],
        **kwargs,
    }
    return AnalyzerConfig.from_dict(config_dict)
